"""Shared option resolution for CLI commands."""

from __future__ import annotations

from pathlib import Path

from inferconf.config.models import Platform
from inferconf.config.user_config import UserConfig
from inferconf.core.probe import StaticCapabilityProbe


def resolve_platform(platform: Platform | None, user_config: UserConfig) -> Platform:
    """CLI flag wins over user config."""
    return platform if platform is not None else user_config.platform


def resolve_probe(
    probe_file: Path | None, user_config: UserConfig
) -> StaticCapabilityProbe | None:
    """Build a probe from --probe, else from the user config's probe_file.

    None when neither is set, which the guards treat as "no devices".

    Raises:
        ProbeError: The probe file cannot be read.
    """
    if probe_file is None and user_config.probe_file:
        probe_file = Path(user_config.probe_file).expanduser()
    if probe_file is None:
        return None
    return StaticCapabilityProbe.from_file(probe_file)
