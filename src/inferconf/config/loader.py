"""Storage adapter for persisted ContextInitParams.

Blobs are stored as JSON (the format the mobile app persists) or YAML. Reads
return the raw mapping so that migration sees exactly what was stored; writes
always produce a current-version blob.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from inferconf.config.migration import migrate_context_init_params
from inferconf.config.models import ContextInitParams, Platform
from inferconf.exceptions import ConfigError

__all__ = [
    "dump_context_init_params",
    "load_context_init_params",
    "load_context_init_params_blob",
    "save_context_init_params",
]

_YAML_SUFFIXES = (".yaml", ".yml")


def load_context_init_params_blob(path: Path | str) -> dict[str, Any]:
    """Load a persisted blob without interpreting it.

    Raises:
        ConfigError: File not found, unsupported format, parse error, or not a mapping.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    try:
        content = path.read_text()
        if path.suffix in _YAML_SUFFIXES:
            result = yaml.safe_load(content)
        elif path.suffix == ".json":
            result = json.loads(content)
        else:
            raise ConfigError(f"Unsupported settings format '{path.suffix}': use .json or .yaml")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Parse error in {path}: {e}") from e

    if not isinstance(result, dict):
        raise ConfigError(f"Settings must be a mapping (got {type(result).__name__}): {path}")
    return result


def load_context_init_params(path: Path | str, platform: Platform) -> ContextInitParams:
    """Load a persisted blob of any version and migrate it to the current schema.

    Raises:
        ConfigError: The file itself cannot be read. A readable but malformed
            blob migrates to the defaults instead.
    """
    blob = load_context_init_params_blob(path)
    return migrate_context_init_params(blob, platform)


def dump_context_init_params(params: ContextInitParams) -> dict[str, Any]:
    """JSON-safe mapping for persistence.

    Unset deprecated fields are omitted; an empty extras bag is omitted.
    """
    data = params.model_dump(mode="json", exclude_none=True)
    if not data.get("extras"):
        data.pop("extras", None)
    return data


def save_context_init_params(params: ContextInitParams, path: Path | str) -> Path:
    """Write params as JSON or YAML depending on the file suffix.

    Returns:
        The path written.

    Raises:
        ConfigError: Unsupported suffix or the file cannot be written.
    """
    path = Path(path)
    data = dump_context_init_params(params)

    if path.suffix in _YAML_SUFFIXES:
        content = yaml.safe_dump(data, sort_keys=False)
    elif path.suffix == ".json":
        content = json.dumps(data, indent=2) + "\n"
    else:
        raise ConfigError(f"Unsupported settings format '{path.suffix}': use .json or .yaml")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    except OSError as e:
        raise ConfigError(f"Cannot write settings to {path}: {e}") from e

    logger.debug(f"Saved context init params {params.version} to {path}")
    return path
