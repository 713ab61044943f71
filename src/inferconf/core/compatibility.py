"""Flash attention / KV cache compatibility rules.

Based on the llama.cpp backend and cache type compatibility matrix. The
V cache rule is a literal lookup table so the whole matrix can be audited
and tested in one place:

    cache_type_v  flash_attn  backend             verdict
    f16 / f32     any         any                 safe
    quantized     off         any                 unsafe
    quantized     on          opencl / hexagon    unsafe
    quantized     on          metal / cpu / blas  safe
    quantized     auto        opencl / hexagon    unsafe
    quantized     auto        metal / cpu / blas  safe

The K cache is safe in every combination. Block-size alignment is the only
known K concern and it is model-specific, so it cannot be checked at
settings time.
"""

from __future__ import annotations

import itertools

from loguru import logger

from inferconf.config.models import BackendType, CacheType, ContextInitParams, FlashAttnType
from inferconf.domain.compatibility import SAFE, CacheTypeOption, CompatibilityVerdict

__all__ = [
    "V_CACHE_RULES",
    "get_allowed_cache_type_k_options",
    "get_allowed_cache_type_v_options",
    "is_cache_type_config_safe",
    "is_cache_type_k_safe",
    "is_cache_type_v_safe",
    "is_quantized_cache_type",
    "reconcile_cache_types",
]

_REQUIRES_FA = "Quantized V cache requires flash attention to be enabled"
_OPENCL_NO_FA = "OpenCL does not support flash attention (required for quantized V cache)"
_HEXAGON_ON = (
    'Hexagon flash attention support varies by device (use "off" with F16/F32 for safety)'
)
_OPENCL_AUTO = "OpenCL auto-disables flash attention, quantized V cache will fail at runtime"
_HEXAGON_AUTO = (
    "Hexagon flash attention support varies by device; quantized V cache may fail at runtime"
)

# (flash_attn_type, backend) -> reason a quantized V cache is unsafe, None if safe
V_CACHE_RULES: dict[tuple[FlashAttnType, BackendType], str | None] = {
    (FlashAttnType.OFF, BackendType.METAL): _REQUIRES_FA,
    (FlashAttnType.OFF, BackendType.OPENCL): _REQUIRES_FA,
    (FlashAttnType.OFF, BackendType.HEXAGON): _REQUIRES_FA,
    (FlashAttnType.OFF, BackendType.CPU): _REQUIRES_FA,
    (FlashAttnType.OFF, BackendType.BLAS): _REQUIRES_FA,
    (FlashAttnType.ON, BackendType.METAL): None,
    (FlashAttnType.ON, BackendType.OPENCL): _OPENCL_NO_FA,
    (FlashAttnType.ON, BackendType.HEXAGON): _HEXAGON_ON,
    (FlashAttnType.ON, BackendType.CPU): None,
    (FlashAttnType.ON, BackendType.BLAS): None,
    (FlashAttnType.AUTO, BackendType.METAL): None,
    (FlashAttnType.AUTO, BackendType.OPENCL): _OPENCL_AUTO,
    (FlashAttnType.AUTO, BackendType.HEXAGON): _HEXAGON_AUTO,
    (FlashAttnType.AUTO, BackendType.CPU): None,
    (FlashAttnType.AUTO, BackendType.BLAS): None,
}


def _validate_v_cache_rules() -> None:
    """Validate V_CACHE_RULES covers every (flash_attn_type, backend) pair at import time."""
    expected = set(itertools.product(FlashAttnType, BackendType))
    missing = expected - set(V_CACHE_RULES)
    if missing:
        raise ValueError(
            f"V_CACHE_RULES is missing combinations: "
            f"{sorted((fa.value, b.value) for fa, b in missing)}"
        )


_validate_v_cache_rules()


def is_quantized_cache_type(cache_type: CacheType | str) -> bool:
    """Anything other than F16/F32 is quantized, including unknown formats."""
    return str(getattr(cache_type, "value", cache_type)) not in (
        CacheType.F16.value,
        CacheType.F32.value,
    )


def is_cache_type_v_safe(
    cache_type: CacheType | str,
    flash_attn_type: FlashAttnType | str,
    backend: BackendType | str,
) -> CompatibilityVerdict:
    """Check whether a V cache type is safe with the flash attention mode and backend.

    Raises:
        ValueError: Unknown flash attention mode or backend.
    """
    rule_key = (FlashAttnType(flash_attn_type), BackendType(backend))
    if not is_quantized_cache_type(cache_type):
        return SAFE

    reason = V_CACHE_RULES[rule_key]
    if reason is None:
        return SAFE
    return CompatibilityVerdict(safe=False, reason=reason)


def is_cache_type_k_safe(
    cache_type: CacheType | str,
    flash_attn_type: FlashAttnType | str,
    backend: BackendType | str,
) -> CompatibilityVerdict:
    """Check whether a K cache type is safe. Every combination is allowed."""
    FlashAttnType(flash_attn_type)
    BackendType(backend)
    return SAFE


def get_allowed_cache_type_v_options(
    flash_attn_type: FlashAttnType | str,
    backend: BackendType | str,
) -> list[CacheTypeOption]:
    """Every V cache type, with unsafe ones disabled and explained."""
    return _build_options(is_cache_type_v_safe, flash_attn_type, backend)


def get_allowed_cache_type_k_options(
    flash_attn_type: FlashAttnType | str,
    backend: BackendType | str,
) -> list[CacheTypeOption]:
    """Every K cache type, with unsafe ones disabled and explained."""
    return _build_options(is_cache_type_k_safe, flash_attn_type, backend)


def _build_options(validator, flash_attn_type, backend) -> list[CacheTypeOption]:
    options = []
    for cache_type in CacheType:
        verdict = validator(cache_type, flash_attn_type, backend)
        options.append(
            CacheTypeOption(
                value=cache_type,
                label=cache_type.label,
                disabled=not verdict.safe,
                reason=None if verdict.safe else verdict.reason,
            )
        )
    return options


def is_cache_type_config_safe(
    params: ContextInitParams,
    backend: BackendType | str,
) -> CompatibilityVerdict:
    """Check both cache types of ``params`` on ``backend``. K is checked first."""
    k_verdict = is_cache_type_k_safe(params.cache_type_k, params.flash_attn_type, backend)
    if not k_verdict.safe:
        return k_verdict
    return is_cache_type_v_safe(params.cache_type_v, params.flash_attn_type, backend)


def reconcile_cache_types(
    params: ContextInitParams,
    backend: BackendType | str,
) -> ContextInitParams:
    """Return params whose cache types are safe on ``backend``.

    An unsafe V cache type is reset to F16, the conservative choice. The
    input is returned unchanged when it is already safe.
    """
    updates: dict[str, CacheType] = {}

    if not is_cache_type_k_safe(params.cache_type_k, params.flash_attn_type, backend).safe:
        updates["cache_type_k"] = CacheType.F16

    v_verdict = is_cache_type_v_safe(params.cache_type_v, params.flash_attn_type, backend)
    if not v_verdict.safe:
        logger.warning(
            f"cache_type_v={params.cache_type_v.value} is unsafe with "
            f"flash_attn_type={params.flash_attn_type.value} on {BackendType(backend).value} "
            f"({v_verdict.reason}), resetting to f16"
        )
        updates["cache_type_v"] = CacheType.F16

    if not updates:
        return params
    return params.model_copy(update=updates)
