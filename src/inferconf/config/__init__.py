"""Configuration subsystem for inferconf.

Public API:
- ContextInitParams: Current-version context initialization parameters
- create_context_init_params / create_default_context_init_params: Factories
- validate_context_init_params: Structural check of a persisted blob
- migrate_context_init_params: Upgrade a blob of any version
- load_context_init_params / save_context_init_params: JSON/YAML storage
- load_user_config: Load user preferences from XDG config dir
"""

from inferconf.config.loader import (
    load_context_init_params,
    load_context_init_params_blob,
    save_context_init_params,
)
from inferconf.config.migration import migrate_context_init_params
from inferconf.config.models import (
    BackendType,
    CacheType,
    ContextInitParams,
    FlashAttnType,
    MmapMode,
    Platform,
    create_context_init_params,
    create_default_context_init_params,
    validate_context_init_params,
)
from inferconf.config.user_config import (
    UserConfig,
    get_user_config_path,
    load_user_config,
)

__all__ = [
    "BackendType",
    "CacheType",
    "ContextInitParams",
    "FlashAttnType",
    "MmapMode",
    "Platform",
    "UserConfig",
    "create_context_init_params",
    "create_default_context_init_params",
    "get_user_config_path",
    "load_context_init_params",
    "load_context_init_params_blob",
    "load_user_config",
    "migrate_context_init_params",
    "save_context_init_params",
    "validate_context_init_params",
]
