"""Core rules: backend resolution, cache compatibility and the device catalog."""

from inferconf.core.backend import backend_for_device, infer_backend_type
from inferconf.core.compatibility import (
    get_allowed_cache_type_k_options,
    get_allowed_cache_type_v_options,
    is_cache_type_config_safe,
    is_cache_type_k_safe,
    is_cache_type_v_safe,
    is_quantized_cache_type,
    reconcile_cache_types,
)
from inferconf.core.devices import (
    apply_device_selection,
    get_current_device_id,
    get_default_device_config,
    get_device_options,
    get_flash_attn_options,
    get_recommended_device_id,
    is_gpu_available,
    is_hexagon_available,
)
from inferconf.core.hexagon import get_hexagon_info, has_supported_hexagon
from inferconf.core.probe import (
    StaticCapabilityProbe,
    check_gpu_support,
    evaluate_gpu_support,
    get_available_devices,
    recommended_thread_count,
)
from inferconf.core.quantization import (
    detect_quantization_type,
    validate_model_quantization_for_device,
)

__all__ = [
    "StaticCapabilityProbe",
    "apply_device_selection",
    "backend_for_device",
    "check_gpu_support",
    "detect_quantization_type",
    "evaluate_gpu_support",
    "get_allowed_cache_type_k_options",
    "get_allowed_cache_type_v_options",
    "get_available_devices",
    "get_current_device_id",
    "get_default_device_config",
    "get_device_options",
    "get_flash_attn_options",
    "get_hexagon_info",
    "get_recommended_device_id",
    "has_supported_hexagon",
    "infer_backend_type",
    "is_cache_type_config_safe",
    "is_cache_type_k_safe",
    "is_cache_type_v_safe",
    "is_gpu_available",
    "is_hexagon_available",
    "is_quantized_cache_type",
    "reconcile_cache_types",
    "recommended_thread_count",
    "validate_model_quantization_for_device",
]
