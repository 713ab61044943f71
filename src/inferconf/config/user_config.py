"""User preferences configuration loading.

Loads optional user preferences from ~/.config/inferconf/config.yaml
(XDG-compliant path via platformdirs). Missing file silently applies all
defaults. Invalid YAML or schema raises ConfigError.

Precedence (low → high):
  built-in defaults < config file < env vars < CLI flags (handled elsewhere)
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from inferconf.config.models import Platform
from inferconf.constants import DEFAULT_PROBE_TIMEOUT_SEC


class UserConfig(BaseModel):
    """User preferences loaded from ~/.config/inferconf/config.yaml.

    All fields are optional. Invalid values raise ConfigError via load_user_config().
    """

    model_config = {"extra": "forbid"}

    platform: Platform = Field(
        default=Platform.ANDROID, description="Platform assumed when a command gets no --platform"
    )
    verbosity: Literal["quiet", "normal", "verbose"] = Field(default="normal")
    probe_timeout_sec: float = Field(
        default=DEFAULT_PROBE_TIMEOUT_SEC, gt=0.0, description="Capability probe timeout"
    )
    probe_file: str | None = Field(
        default=None, description="Default device snapshot (YAML/JSON) used as the probe"
    )


def get_user_config_path() -> Path:
    """Return the XDG-compliant user config path.

    Linux:   ~/.config/inferconf/config.yaml
    macOS:   ~/Library/Application Support/inferconf/config.yaml
    Windows: %APPDATA%\\inferconf\\config.yaml
    """
    from platformdirs import user_config_dir

    return Path(user_config_dir("inferconf")) / "config.yaml"


def _apply_env_overrides(config: UserConfig) -> UserConfig:
    """Apply INFERCONF_* environment variable overrides to user config.

    Unparseable values are ignored.
    """
    updates: dict[str, Any] = {}
    if val := os.environ.get("INFERCONF_PLATFORM"):
        with contextlib.suppress(ValueError):
            updates["platform"] = Platform(val.lower())
    if val := os.environ.get("INFERCONF_PROBE_TIMEOUT"):
        with contextlib.suppress(ValueError):
            timeout = float(val)
            if timeout > 0:
                updates["probe_timeout_sec"] = timeout

    return config.model_copy(update=updates) if updates else config


def load_user_config(config_path: Path | None = None) -> UserConfig:
    """Load user configuration from ~/.config/inferconf/config.yaml.

    Missing file: silently applies all defaults.
    Invalid YAML: raises ConfigError with parse error detail.
    Invalid schema: raises ConfigError with field path context.

    Args:
        config_path: Explicit path override (for testing). None = XDG default.

    Returns:
        UserConfig with file values merged over defaults, env vars applied on top.
    """
    from inferconf.exceptions import ConfigError

    path = config_path or get_user_config_path()

    if not path.exists():
        return _apply_env_overrides(UserConfig())

    try:
        content = path.read_text()
        data = yaml.safe_load(content) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"User config must be a YAML mapping: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in user config {path}: {e}") from e

    try:
        config = UserConfig.model_validate(data)
    except ValidationError as e:
        errors = [f"  {err['loc']}: {err['msg']}" for err in e.errors()]
        raise ConfigError(f"Invalid user config {path}:\n" + "\n".join(errors)) from e

    return _apply_env_overrides(config)


__all__ = ["UserConfig", "get_user_config_path", "load_user_config"]
