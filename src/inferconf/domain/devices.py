"""Device catalog and capability probe models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from inferconf.config.models import FlashAttnType
from inferconf.constants import HEXAGON_DEVICE_PREFIX

DeviceOptionId = Literal["auto", "gpu", "hexagon", "cpu"]
DeviceTag = Literal["Recommended", "Fastest", "Stable", "Compatible", "Experimental"]
GpuUnsupportedReason = Literal["ios_version", "no_adreno", "missing_cpu_features", "unknown"]


class BackendDeviceInfo(BaseModel):
    """A compute device as reported by the capability probe.

    Probes report camelCase keys (``deviceName``); both spellings are accepted.
    Any further keys the probe reports are kept.
    """

    model_config = {"extra": "allow", "frozen": True, "populate_by_name": True}

    device_name: str | None = Field(default=None, alias="deviceName")
    type: Literal["cpu", "gpu", "npu"] | None = None

    @property
    def is_gpu(self) -> bool:
        """A GPU that can be addressed by name. Unnamed GPUs cannot be selected."""
        return self.type == "gpu" and bool(self.device_name)

    @property
    def is_hexagon(self) -> bool:
        """A Hexagon NPU session (``HTP0``, ``HTP1``, ...)."""
        return bool(self.device_name) and self.device_name.startswith(HEXAGON_DEVICE_PREFIX)


class GpuCapabilities(BaseModel):
    """GPU acceleration support on the current hardware."""

    model_config = {"extra": "forbid", "frozen": True}

    is_supported: bool
    reason: GpuUnsupportedReason | None = None
    details: dict[str, Any] = Field(default_factory=dict)


UNSUPPORTED_GPU = GpuCapabilities(is_supported=False, reason="unknown")


class DeviceOption(BaseModel):
    """A selectable device bundle with its compatible flash attention range."""

    model_config = {"extra": "forbid", "frozen": True}

    id: DeviceOptionId
    label: str
    description: str
    devices: list[str] | None = Field(default=None, description="None = auto-select")
    n_gpu_layers: int = Field(ge=0, description="Recommended offloaded layer count")
    default_flash_attn_type: FlashAttnType
    valid_flash_attn_types: tuple[FlashAttnType, ...] = Field(min_length=1)
    tag: DeviceTag | None = None
    experimental: bool = False
    platform: Literal["ios", "android", "both"]
    device_info: BackendDeviceInfo | None = None

    @model_validator(mode="after")
    def validate_default_flash_attn(self) -> DeviceOption:
        """The default flash attention mode must be one the device accepts."""
        if self.default_flash_attn_type not in self.valid_flash_attn_types:
            raise ValueError(
                f"default_flash_attn_type={self.default_flash_attn_type.value!r} is not in "
                f"valid_flash_attn_types={[t.value for t in self.valid_flash_attn_types]}"
            )
        return self

    def accepts_flash_attn(self, flash_attn_type: FlashAttnType | str) -> bool:
        """True if ``flash_attn_type`` is valid for this device."""
        return FlashAttnType(flash_attn_type) in self.valid_flash_attn_types


class DefaultDeviceConfig(BaseModel):
    """Platform default device settings for a fresh install."""

    model_config = {"extra": "forbid", "frozen": True}

    devices: list[str] | None = None
    n_gpu_layers: int = Field(ge=0)
    default_flash_attn_type: FlashAttnType


class QuantizationCheck(BaseModel):
    """Result of checking a model file's quantization against a device."""

    model_config = {"extra": "forbid", "frozen": True}

    valid: bool
    warning: str | None = None
    recommendation: str | None = None


class HexagonInfo(BaseModel):
    """A detected Hexagon NPU."""

    model_config = {"extra": "forbid", "frozen": True}

    version: str
    device_name: str
    soc: str
    supported: bool
