"""Schema migration for persisted ContextInitParams.

A blob of any historical shape is parsed into its snapshot model and walked
through MIGRATION_STEPS, one pure step per version boundary:

    "0.0" -> "1.0" -> "2.0"

Each step only touches the fields relevant to its boundary and stamps the
version it produces. Whatever the chain ends on is filled with factory
defaults and stamped with the current version.

When adding a schema version:
    1. Add a snapshot model in legacy.py and register its Tag
    2. Add an upgrade step here and register it in MIGRATION_STEPS
    3. Bump CURRENT_CONTEXT_INIT_PARAMS_VERSION in constants.py

Migration never raises: a blob that cannot be parsed is replaced by
create_default_context_init_params() so a broken settings file cannot block
startup.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from inferconf.config.legacy import (
    ContextParamsSnapshot,
    ContextParamsV0,
    ContextParamsV1,
    ContextParamsV2,
    parse_snapshot,
)
from inferconf.config.models import (
    ContextInitParams,
    FlashAttnType,
    MmapMode,
    Platform,
    create_context_init_params,
    create_default_context_init_params,
    default_flash_attn_type,
    default_use_mmap,
)
from inferconf.constants import (
    CURRENT_CONTEXT_INIT_PARAMS_VERSION,
    DEFAULT_KV_UNIFIED,
    DEFAULT_N_CTX,
    DEFAULT_N_GPU_LAYERS,
    DEFAULT_N_PARALLEL,
    LEGACY_DEFAULT_N_CTX,
)

__all__ = ["MIGRATION_STEPS", "migrate_context_init_params"]


# =============================================================================
# Steps
# =============================================================================


def upgrade_v0_to_v1(snapshot: ContextParamsV0, platform: Platform) -> ContextParamsV1:
    """Pre-versioning -> 1.0: n_context rename, mlock/mmap/no_gpu_devices defaults."""
    data = snapshot.model_dump(exclude_none=True)

    # Legacy property name; only renamed when it does not clash with n_ctx
    if "n_context" in data and "n_ctx" not in data:
        data["n_ctx"] = data.pop("n_context")

    data.setdefault("use_mlock", False)

    use_mmap = data.get("use_mmap")
    if use_mmap is None:
        data["use_mmap"] = default_use_mmap(platform)
    elif isinstance(use_mmap, bool):
        data["use_mmap"] = MmapMode.TRUE if use_mmap else MmapMode.FALSE

    data.setdefault("no_gpu_devices", False)

    data["version"] = "1.0"
    return ContextParamsV1.model_validate(data)


def upgrade_v1_to_v2(snapshot: ContextParamsV1, platform: Platform) -> ContextParamsV2:
    """1.0 -> 2.0: device model, flash_attn_type, kv_unified, n_parallel, n_ctx bump.

    The deprecated no_gpu_devices and flash_attn fields are kept.
    """
    data = snapshot.model_dump(exclude_none=True)

    # A stored null still counts as present; anything but True means GPU enabled
    if "no_gpu_devices" in snapshot.model_fields_set:
        data.pop("devices", None)
        if snapshot.no_gpu_devices is True:
            # GPU was disabled: CPU only
            data["n_gpu_layers"] = 0
        elif not data.get("n_gpu_layers"):
            # GPU was enabled: auto-select, keep an explicit non-zero layer count
            data["n_gpu_layers"] = DEFAULT_N_GPU_LAYERS

    flash_attn = data.get("flash_attn")
    if flash_attn is not None:
        data["flash_attn_type"] = (
            default_flash_attn_type(platform) if flash_attn else FlashAttnType.OFF
        )
    elif data.get("flash_attn_type") is None:
        data["flash_attn_type"] = default_flash_attn_type(platform)

    data.setdefault("kv_unified", DEFAULT_KV_UNIFIED)
    data.setdefault("n_parallel", DEFAULT_N_PARALLEL)

    # One-time nudge off the old default; explicit choices are left alone
    if data.get("n_ctx") == LEGACY_DEFAULT_N_CTX:
        data["n_ctx"] = DEFAULT_N_CTX

    data["version"] = "2.0"
    return ContextParamsV2.model_validate(data)


MigrationStep = Callable[[Any, Platform], ContextParamsSnapshot]

# Snapshot type -> step producing the next version. ContextParamsV2 is terminal.
MIGRATION_STEPS: dict[type, MigrationStep] = {
    ContextParamsV0: upgrade_v0_to_v1,
    ContextParamsV1: upgrade_v1_to_v2,
}


# =============================================================================
# Public API
# =============================================================================


def migrate_context_init_params(params: Any, platform: Platform) -> ContextInitParams:
    """Upgrade persisted params of any version to the current schema.

    Migrating an already-current value is a no-op, so the function is
    idempotent. The result's version is always the current schema version.

    Args:
        params: A ContextInitParams, or a mapping loaded from storage in any
            historical shape (version missing, "0.0", "1.0", "2.0" or newer).
        platform: Host platform used for platform-dependent defaults.

    Returns:
        Current-version ContextInitParams. Malformed input yields the
        conservative defaults instead of an error.
    """
    if isinstance(params, ContextInitParams):
        if params.version == CURRENT_CONTEXT_INIT_PARAMS_VERSION:
            return params
        params = params.model_dump(exclude_none=True)

    if not isinstance(params, Mapping):
        logger.warning(
            f"Context init params must be a mapping (got {type(params).__name__}), using defaults"
        )
        return create_default_context_init_params(platform)

    try:
        snapshot = parse_snapshot(params)
        start_version = snapshot.version
        while (step := MIGRATION_STEPS.get(type(snapshot))) is not None:
            snapshot = step(snapshot, platform)
            logger.debug(f"Migrated context init params to {snapshot.version}")
        migrated = _finalize(snapshot, platform)
    except (TypeError, ValueError) as e:
        # pydantic.ValidationError is a ValueError
        logger.warning(f"Malformed context init params, using defaults: {e}")
        return create_default_context_init_params(platform)

    if start_version != migrated.version:
        logger.info(f"Context init params migrated {start_version} -> {migrated.version}")
    return migrated


def _finalize(snapshot: ContextParamsSnapshot, platform: Platform) -> ContextInitParams:
    """Fill remaining defaults and move unknown keys into the extras bag."""
    if not isinstance(snapshot, ContextParamsV2):
        raise TypeError(f"Migration stopped at {type(snapshot).__name__}, expected ContextParamsV2")

    data = snapshot.model_dump(exclude_none=True)
    known_fields = set(ContextInitParams.model_fields)

    previous_extras = data.pop("extras", None)
    extras: dict[str, Any] = (
        dict(previous_extras)
        if isinstance(previous_extras, Mapping)
        else ({} if previous_extras is None else {"extras": previous_extras})
    )
    for key in [k for k in data if k not in known_fields]:
        extras[key] = data.pop(key)
    if extras:
        logger.debug(f"Carrying unknown context init params fields: {sorted(extras)}")

    data["extras"] = extras
    return create_context_init_params(data, platform)
