"""Context initialization parameters (v2.0 schema).

ContextInitParams is the only shape handed to the inference engine. Values
are immutable: every settings change produces a new instance via
``model_copy(update=...)`` or one of the factories below.

v2.0 changes from v1.0:
    no_gpu_devices -> devices + n_gpu_layers
    flash_attn     -> flash_attn_type
    new fields: kv_unified, n_parallel

v1.0 changes from pre-versioned blobs:
    n_context -> n_ctx
    use_mmap: bool -> "true" | "false" | "smart"

The deprecated fields (no_gpu_devices, flash_attn) are retained so that a
blob written by this version can still be read by an older build.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from inferconf.constants import (
    CURRENT_CONTEXT_INIT_PARAMS_VERSION,
    DEFAULT_KV_UNIFIED,
    DEFAULT_N_BATCH,
    DEFAULT_N_CTX,
    DEFAULT_N_GPU_LAYERS,
    DEFAULT_N_PARALLEL,
    DEFAULT_N_THREADS,
    DEFAULT_N_UBATCH,
)

# =============================================================================
# Enums
# =============================================================================


class Platform(str, Enum):
    """Host platform class. Drives every platform-dependent default and rule."""

    IOS = "ios"
    ANDROID = "android"


class CacheType(str, Enum):
    """KV cache storage format."""

    F16 = "f16"
    F32 = "f32"
    Q8_0 = "q8_0"
    Q5_1 = "q5_1"
    Q5_0 = "q5_0"
    Q4_1 = "q4_1"
    Q4_0 = "q4_0"
    IQ4_NL = "iq4_nl"

    @property
    def is_quantized(self) -> bool:
        """True for every format narrower than 16-bit float."""
        return self not in (CacheType.F16, CacheType.F32)

    @property
    def label(self) -> str:
        """Label shown in cache type menus."""
        if self is CacheType.F16:
            return "F16 (Default)"
        return self.value.upper()


class FlashAttnType(str, Enum):
    """Flash attention mode passed to the inference engine."""

    AUTO = "auto"
    ON = "on"
    OFF = "off"


class MmapMode(str, Enum):
    """Memory-mapping mode. ``smart`` is only offered on Android."""

    TRUE = "true"
    FALSE = "false"
    SMART = "smart"


class BackendType(str, Enum):
    """Compute backend that will execute inference."""

    METAL = "metal"
    OPENCL = "opencl"
    HEXAGON = "hexagon"
    CPU = "cpu"
    BLAS = "blas"


# =============================================================================
# Platform defaults
# =============================================================================


def default_use_mmap(platform: Platform) -> MmapMode:
    """Android defaults to smart mmap, iOS to plain mmap."""
    return MmapMode.SMART if platform == Platform.ANDROID else MmapMode.TRUE


def default_flash_attn_type(platform: Platform) -> FlashAttnType:
    """iOS (Metal) lets the engine decide; Android keeps flash attention off."""
    return FlashAttnType.AUTO if platform == Platform.IOS else FlashAttnType.OFF


# Platform-independent defaults, applied wherever a field is absent or None
CONTEXT_INIT_PARAMS_DEFAULTS: dict[str, Any] = {
    "n_ctx": DEFAULT_N_CTX,
    "n_batch": DEFAULT_N_BATCH,
    "n_ubatch": DEFAULT_N_UBATCH,
    "n_threads": DEFAULT_N_THREADS,
    "cache_type_k": CacheType.F16,
    "cache_type_v": CacheType.F16,
    "n_gpu_layers": DEFAULT_N_GPU_LAYERS,
    "use_mlock": False,
    "kv_unified": DEFAULT_KV_UNIFIED,
    "n_parallel": DEFAULT_N_PARALLEL,
}

# Fields a persisted blob must carry to be usable without migration.
# The v2.0 additions are optional because they all have safe defaults.
REQUIRED_FIELDS: tuple[str, ...] = (
    "version",
    "n_ctx",
    "n_batch",
    "n_ubatch",
    "n_threads",
    "cache_type_k",
    "cache_type_v",
    "n_gpu_layers",
    "use_mlock",
    "use_mmap",
)

# Never forwarded to the inference engine
_NON_ENGINE_FIELDS = frozenset({"no_gpu_devices", "flash_attn", "extras"})


# =============================================================================
# ContextInitParams
# =============================================================================


class ContextInitParams(BaseModel):
    """Current-version context initialization parameters.

    Platform-dependent fields (use_mmap, flash_attn_type) have no static
    default; use create_context_init_params() to build a value from a
    partial mapping.
    """

    model_config = {"extra": "forbid", "frozen": True}

    version: str = Field(
        default=CURRENT_CONTEXT_INIT_PARAMS_VERSION, min_length=1, description="Schema version tag"
    )
    n_ctx: int = Field(default=DEFAULT_N_CTX, gt=0, description="Context size in tokens")
    n_batch: int = Field(default=DEFAULT_N_BATCH, gt=0, description="Logical batch size")
    n_ubatch: int = Field(default=DEFAULT_N_UBATCH, gt=0, description="Physical batch size")
    n_threads: int = Field(default=DEFAULT_N_THREADS, gt=0, description="CPU threads")
    cache_type_k: CacheType = Field(default=CacheType.F16, description="K cache format")
    cache_type_v: CacheType = Field(default=CacheType.F16, description="V cache format")
    n_gpu_layers: int = Field(
        default=DEFAULT_N_GPU_LAYERS, ge=0, description="Layers offloaded to the accelerator"
    )
    use_mlock: bool = Field(default=False, description="Lock model memory")
    use_mmap: MmapMode = Field(..., description="Memory-map the model file")
    devices: list[str] | None = Field(
        default=None, description="Ordered device identifiers (None = auto-select)"
    )
    flash_attn_type: FlashAttnType = Field(..., description="Flash attention mode")
    kv_unified: bool = Field(default=DEFAULT_KV_UNIFIED, description="Unified KV buffer")
    n_parallel: int = Field(default=DEFAULT_N_PARALLEL, gt=0, description="Parallel sequences")

    # Deprecated in v2.0, retained for older readers of the same blob
    no_gpu_devices: bool | None = Field(
        default=None, description="Deprecated: superseded by devices/n_gpu_layers"
    )
    flash_attn: bool | None = Field(
        default=None, description="Deprecated: superseded by flash_attn_type"
    )

    extras: dict[str, Any] = Field(
        default_factory=dict,
        description="Unknown fields carried over from older blobs (never sent to the engine)",
    )

    @field_validator("use_mmap", mode="before")
    @classmethod
    def coerce_bool_mmap(cls, value: Any) -> Any:
        """Older blobs stored use_mmap as a boolean."""
        if isinstance(value, bool):
            return MmapMode.TRUE if value else MmapMode.FALSE
        return value

    def engine_params(self) -> dict[str, Any]:
        """Exactly the current-schema fields, as consumed by the inference engine.

        ``devices`` is omitted when unset so the engine auto-selects.
        """
        params = self.model_dump(mode="json", exclude=set(_NON_ENGINE_FIELDS))
        if params.get("devices") is None:
            params.pop("devices", None)
        return params


# =============================================================================
# Factories and structural validation
# =============================================================================


def create_context_init_params(
    params: Mapping[str, Any] | None,
    platform: Platform,
) -> ContextInitParams:
    """Create a current-version ContextInitParams from a partial mapping.

    Every absent (or None) field is filled with its documented default,
    a boolean ``use_mmap`` is converted to its string form and
    ``flash_attn_type`` is derived from the platform when missing. The
    version is always stamped to the current schema version.

    Args:
        params: Caller overrides. Keys must be ContextInitParams fields.
        platform: Host platform used for platform-dependent defaults.

    Returns:
        A validated ContextInitParams.

    Raises:
        ValidationError: Unknown field or out-of-range value in ``params``.
    """
    values: dict[str, Any] = dict(params or {})

    for name, default in CONTEXT_INIT_PARAMS_DEFAULTS.items():
        if values.get(name) is None:
            values[name] = default

    if values.get("use_mmap") is None:
        values["use_mmap"] = default_use_mmap(platform)
    if values.get("flash_attn_type") is None:
        values["flash_attn_type"] = default_flash_attn_type(platform)
    if values.get("extras") is None:
        values.pop("extras", None)

    values["version"] = CURRENT_CONTEXT_INIT_PARAMS_VERSION
    return ContextInitParams.model_validate(values)


def create_default_context_init_params(platform: Platform) -> ContextInitParams:
    """Conservative defaults, used when persisted params are corrupted or missing."""
    return create_context_init_params({}, platform)


def validate_context_init_params(params: Any) -> bool:
    """Check that every required field is present.

    This guards against truncated or corrupted persisted blobs only. It does
    not check cross-field compatibility (see core.compatibility).

    Args:
        params: A ContextInitParams or a mapping loaded from storage.

    Returns:
        True if all REQUIRED_FIELDS are present.
    """
    if isinstance(params, ContextInitParams):
        return True
    if not isinstance(params, Mapping):
        return False
    return all(field in params for field in REQUIRED_FIELDS)
