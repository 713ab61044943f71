"""inferconf -- inference configuration engine for on-device LLM runtimes.

Public API:
    ContextInitParams, migrate_context_init_params, create_context_init_params,
    validate_context_init_params, infer_backend_type, is_cache_type_v_safe,
    is_cache_type_k_safe, get_device_options, __version__

Everything else is internal and may change without notice.
"""

from inferconf.config.migration import migrate_context_init_params
from inferconf.config.models import (
    BackendType,
    CacheType,
    ContextInitParams,
    FlashAttnType,
    Platform,
    create_context_init_params,
    create_default_context_init_params,
    validate_context_init_params,
)
from inferconf.core.backend import infer_backend_type
from inferconf.core.compatibility import (
    get_allowed_cache_type_k_options,
    get_allowed_cache_type_v_options,
    is_cache_type_k_safe,
    is_cache_type_v_safe,
)
from inferconf.core.devices import apply_device_selection, get_device_options

__version__: str = "2.0.0"

__all__ = [
    "BackendType",
    "CacheType",
    "ContextInitParams",
    "FlashAttnType",
    "Platform",
    "__version__",
    "apply_device_selection",
    "create_context_init_params",
    "create_default_context_init_params",
    "get_allowed_cache_type_k_options",
    "get_allowed_cache_type_v_options",
    "get_device_options",
    "infer_backend_type",
    "is_cache_type_k_safe",
    "is_cache_type_v_safe",
    "migrate_context_init_params",
    "validate_context_init_params",
]
