"""Compatibility verdicts and UI option models."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from inferconf.config.models import CacheType, FlashAttnType


class CompatibilityVerdict(BaseModel):
    """Whether a cache/flash-attention/backend combination is safe.

    An unsafe verdict always carries a human-readable reason.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    safe: bool
    reason: str | None = None

    @model_validator(mode="after")
    def validate_reason_when_unsafe(self) -> CompatibilityVerdict:
        """safe=False without a reason would leave the UI unable to explain it."""
        if not self.safe and not self.reason:
            raise ValueError("Unsafe CompatibilityVerdict requires a reason")
        return self


SAFE = CompatibilityVerdict(safe=True)


class CacheTypeOption(BaseModel):
    """One entry of a cache type menu. Unsafe entries are disabled, never dropped."""

    model_config = {"frozen": True, "extra": "forbid"}

    value: CacheType
    label: str
    disabled: bool = False
    reason: str | None = Field(default=None, description="Why the option is disabled")


class FlashAttnOption(BaseModel):
    """One flash attention segmented-button entry."""

    model_config = {"frozen": True, "extra": "forbid"}

    value: FlashAttnType
    disabled: bool = False
