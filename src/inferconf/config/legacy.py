"""Historical ContextInitParams shapes.

Persisted blobs are parsed into a closed union of snapshot models, one per
schema version, discriminated by the version tag. Fields are lenient
(optional, None = absent) because old blobs may lack anything; unknown keys
are kept as pydantic extras and survive migration in ContextInitParams.extras.

Version tags:
    "0.0"  pre-versioning (no version field): n_context, boolean use_mmap
    "1.0"  no_gpu_devices, boolean flash_attn
    "2.0"  current shape (devices, flash_attn_type, kv_unified, n_parallel)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter

from inferconf.config.models import CacheType, FlashAttnType, MmapMode
from inferconf.constants import (
    CURRENT_CONTEXT_INIT_PARAMS_VERSION,
    LEGACY_CONTEXT_INIT_PARAMS_VERSION,
)

KNOWN_SCHEMA_VERSIONS: tuple[str, ...] = ("0.0", "1.0", "2.0")


def normalize_schema_version(version: Any) -> str:
    """Map a raw version value onto a known schema tag.

    Missing or falsy versions are pre-versioning blobs. Numeric tags are
    accepted in either form (``1`` and ``1.0`` -> ``"1.0"``). Unrecognised
    tags come from a newer build and are treated as current.
    """
    if not version:
        return LEGACY_CONTEXT_INIT_PARAMS_VERSION
    tag = str(version)
    if tag.isdigit():
        # YAML reads "version: 1" as an int
        tag = f"{tag}.0"
    if tag in KNOWN_SCHEMA_VERSIONS:
        return tag
    return CURRENT_CONTEXT_INIT_PARAMS_VERSION


class _ContextParamsSnapshot(BaseModel):
    """Fields shared by every historical shape."""

    model_config = {"extra": "allow", "frozen": True}

    n_ctx: int | None = None
    n_batch: int | None = None
    n_ubatch: int | None = None
    n_threads: int | None = None
    cache_type_k: CacheType | None = None
    cache_type_v: CacheType | None = None
    n_gpu_layers: int | None = None
    use_mlock: bool | None = None
    use_mmap: MmapMode | bool | None = None
    devices: list[str] | None = None
    flash_attn_type: FlashAttnType | None = None
    flash_attn: bool | None = None
    no_gpu_devices: bool | None = None
    kv_unified: bool | None = None
    n_parallel: int | None = None


class ContextParamsV0(_ContextParamsSnapshot):
    """Pre-versioning blob."""

    version: Literal["0.0"] = "0.0"
    n_context: int | None = Field(default=None, description="Renamed to n_ctx in 1.0")


class ContextParamsV1(_ContextParamsSnapshot):
    """Schema 1.0."""

    version: Literal["1.0"] = "1.0"


class ContextParamsV2(_ContextParamsSnapshot):
    """Schema 2.0 (current)."""

    version: Literal["2.0"] = "2.0"


ContextParamsSnapshot = Union[ContextParamsV0, ContextParamsV1, ContextParamsV2]


def _snapshot_tag(value: Any) -> str:
    if isinstance(value, Mapping):
        return normalize_schema_version(value.get("version"))
    return normalize_schema_version(getattr(value, "version", None))


_SNAPSHOT_ADAPTER: TypeAdapter[ContextParamsSnapshot] = TypeAdapter(
    Annotated[
        Union[
            Annotated[ContextParamsV0, Tag("0.0")],
            Annotated[ContextParamsV1, Tag("1.0")],
            Annotated[ContextParamsV2, Tag("2.0")],
        ],
        Discriminator(_snapshot_tag),
    ]
)


def parse_snapshot(blob: Mapping[str, Any]) -> ContextParamsSnapshot:
    """Parse a persisted blob into the snapshot model for its schema version.

    Raises:
        ValidationError: A known field holds a value of the wrong type.
    """
    data = dict(blob)
    data["version"] = normalize_schema_version(data.get("version"))
    return _SNAPSHOT_ADAPTER.validate_python(data)
