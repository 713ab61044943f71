"""Tests for the flash attention / KV cache compatibility rules."""

import itertools

import pytest

from inferconf.config.models import (
    BackendType,
    CacheType,
    FlashAttnType,
    Platform,
    create_context_init_params,
)
from inferconf.core.compatibility import (
    V_CACHE_RULES,
    get_allowed_cache_type_k_options,
    get_allowed_cache_type_v_options,
    is_cache_type_config_safe,
    is_cache_type_k_safe,
    is_cache_type_v_safe,
    is_quantized_cache_type,
    reconcile_cache_types,
)

QUANTIZED = [c for c in CacheType if c not in (CacheType.F16, CacheType.F32)]
SAFE_BACKENDS = (BackendType.METAL, BackendType.CPU, BackendType.BLAS)
UNSAFE_BACKENDS = (BackendType.OPENCL, BackendType.HEXAGON)

ALL_COMBINATIONS = list(itertools.product(CacheType, FlashAttnType, BackendType))


def expected_v_safe(cache_type: CacheType, fa: FlashAttnType, backend: BackendType) -> bool:
    if cache_type in (CacheType.F16, CacheType.F32):
        return True
    if fa == FlashAttnType.OFF:
        return False
    return backend in SAFE_BACKENDS


class TestVCacheMatrix:
    def test_matrix_size(self):
        assert len(ALL_COMBINATIONS) == 8 * 3 * 5
        assert len(V_CACHE_RULES) == 3 * 5

    @pytest.mark.parametrize(("cache_type", "fa", "backend"), ALL_COMBINATIONS)
    def test_every_combination(self, cache_type, fa, backend):
        verdict = is_cache_type_v_safe(cache_type, fa, backend)
        assert verdict.safe is expected_v_safe(cache_type, fa, backend)
        if verdict.safe:
            assert verdict.reason is None
        else:
            assert verdict.reason

    @pytest.mark.parametrize("cache_type", [CacheType.F16, CacheType.F32])
    def test_unquantized_always_safe(self, cache_type):
        for fa, backend in itertools.product(FlashAttnType, BackendType):
            assert is_cache_type_v_safe(cache_type, fa, backend).safe

    def test_reasons(self):
        assert is_cache_type_v_safe("q8_0", "off", "metal").reason == (
            "Quantized V cache requires flash attention to be enabled"
        )
        assert is_cache_type_v_safe("q8_0", "on", "opencl").reason == (
            "OpenCL does not support flash attention (required for quantized V cache)"
        )
        assert is_cache_type_v_safe("q4_0", "on", "hexagon").reason == (
            'Hexagon flash attention support varies by device (use "off" with F16/F32 for safety)'
        )
        assert is_cache_type_v_safe("q4_0", "auto", "opencl").reason == (
            "OpenCL auto-disables flash attention, quantized V cache will fail at runtime"
        )
        assert is_cache_type_v_safe("iq4_nl", "auto", "hexagon").reason == (
            "Hexagon flash attention support varies by device; quantized V cache may fail at runtime"
        )

    def test_accepts_strings(self):
        assert is_cache_type_v_safe("q8_0", "on", "metal").safe
        assert not is_cache_type_v_safe("q8_0", "auto", "opencl").safe

    def test_unknown_quantized_string_treated_as_quantized(self):
        assert not is_cache_type_v_safe("q3_k", "off", "cpu").safe

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            is_cache_type_v_safe("f16", "on", "vulkan")


class TestKCache:
    @pytest.mark.parametrize(("cache_type", "fa", "backend"), ALL_COMBINATIONS)
    def test_always_safe(self, cache_type, fa, backend):
        verdict = is_cache_type_k_safe(cache_type, fa, backend)
        assert verdict.safe
        assert verdict.reason is None


class TestIsQuantizedCacheType:
    def test_members(self):
        assert [c for c in CacheType if is_quantized_cache_type(c)] == QUANTIZED

    def test_strings(self):
        assert not is_quantized_cache_type("f16")
        assert is_quantized_cache_type("q5_1")


class TestCacheTypeOptions:
    def test_v_options_on_opencl_auto(self):
        options = get_allowed_cache_type_v_options(FlashAttnType.AUTO, BackendType.OPENCL)
        assert [o.value for o in options] == list(CacheType)
        enabled = [o.value for o in options if not o.disabled]
        assert enabled == [CacheType.F16, CacheType.F32]
        for option in options:
            if option.disabled:
                assert option.reason.startswith("OpenCL auto-disables")

    def test_v_options_on_metal_on(self):
        options = get_allowed_cache_type_v_options("on", "metal")
        assert not any(o.disabled for o in options)
        assert all(o.reason is None for o in options)

    def test_labels(self):
        options = get_allowed_cache_type_k_options("off", "cpu")
        assert options[0].label == "F16 (Default)"
        assert options[-1].label == "IQ4_NL"

    def test_k_options_never_disabled(self):
        for fa, backend in itertools.product(FlashAttnType, BackendType):
            assert not any(o.disabled for o in get_allowed_cache_type_k_options(fa, backend))


class TestReconcileCacheTypes:
    def test_unsafe_v_reset(self):
        params = create_context_init_params(
            {"cache_type_k": "q8_0", "cache_type_v": "q8_0", "flash_attn_type": "auto"},
            Platform.ANDROID,
        )
        assert not is_cache_type_config_safe(params, BackendType.OPENCL).safe

        reconciled = reconcile_cache_types(params, BackendType.OPENCL)
        assert reconciled.cache_type_v == CacheType.F16
        assert reconciled.cache_type_k == CacheType.Q8_0
        assert is_cache_type_config_safe(reconciled, BackendType.OPENCL).safe

    def test_safe_params_unchanged(self):
        params = create_context_init_params(
            {"cache_type_v": "q8_0", "flash_attn_type": "on"}, Platform.IOS
        )
        assert reconcile_cache_types(params, BackendType.METAL) is params
