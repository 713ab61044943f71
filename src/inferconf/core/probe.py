"""Capability probe guards and hardware heuristics.

The guards in this module are the only place probe calls are awaited. A
probe that raises, returns garbage or hangs past the timeout resolves to the
conservative fallback (no devices, GPU unsupported) and is logged, never
raised to the caller.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from inferconf.config.models import Platform
from inferconf.constants import DEFAULT_CPU_CORES, DEFAULT_PROBE_TIMEOUT_SEC, MIN_IOS_VERSION_FOR_GPU
from inferconf.domain.devices import UNSUPPORTED_GPU, BackendDeviceInfo, GpuCapabilities
from inferconf.exceptions import ProbeError
from inferconf.protocols import CapabilityProbe

__all__ = [
    "StaticCapabilityProbe",
    "check_gpu_support",
    "evaluate_gpu_support",
    "get_available_devices",
    "recommended_thread_count",
]


# =============================================================================
# Guards
# =============================================================================


async def get_available_devices(
    probe: CapabilityProbe | None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> list[BackendDeviceInfo]:
    """Query the probe for devices, falling back to an empty list.

    Args:
        probe: Capability probe. None means no probe is available.
        timeout: Seconds to wait before giving up.

    Returns:
        Parsed devices. Entries the probe reports in an unknown shape are skipped.
    """
    if probe is None:
        logger.debug("Probe: none configured, reporting no devices")
        return []

    try:
        raw_devices = await asyncio.wait_for(probe.get_available_devices(), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Probe: device enumeration timed out after {timeout}s")
        return []
    except Exception as e:
        logger.warning(f"Probe: failed to get backend devices info: {e}")
        return []

    if not isinstance(raw_devices, (list, tuple)):
        if raw_devices is not None:
            logger.warning(f"Probe: expected a device list, got {type(raw_devices).__name__}")
        return []

    devices: list[BackendDeviceInfo] = []
    for entry in raw_devices:
        try:
            devices.append(BackendDeviceInfo.model_validate(entry))
        except ValidationError as e:
            logger.debug(f"Probe: skipping unrecognised device entry {entry!r}: {e}")
    logger.debug(f"Probe: {len(devices)} device(s) available")
    return devices


async def check_gpu_support(
    probe: CapabilityProbe | None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> GpuCapabilities:
    """Query GPU support, falling back to unsupported/unknown."""
    if probe is None:
        return UNSUPPORTED_GPU

    try:
        result = await asyncio.wait_for(probe.check_gpu_support(), timeout)
        return GpuCapabilities.model_validate(result)
    except asyncio.TimeoutError:
        logger.warning(f"Probe: GPU support check timed out after {timeout}s")
    except Exception as e:
        logger.warning(f"Probe: failed to check GPU support: {e}")
    return UNSUPPORTED_GPU


# =============================================================================
# Heuristics used by probe implementations
# =============================================================================


def evaluate_gpu_support(
    platform: Platform,
    ios_version: int | None = None,
    has_adreno: bool | None = None,
    has_i8mm: bool | None = None,
    has_dotprod: bool | None = None,
) -> GpuCapabilities:
    """Decide GPU support from raw hardware facts.

    iOS needs iOS 18+ for Metal. Android needs an Adreno GPU plus the i8mm
    and dotprod CPU features for OpenCL.
    """
    if platform == Platform.IOS:
        if ios_version is None:
            return UNSUPPORTED_GPU
        supported = ios_version >= MIN_IOS_VERSION_FOR_GPU
        return GpuCapabilities(
            is_supported=supported,
            reason=None if supported else "ios_version",
            details={"ios_version": ios_version},
        )

    adreno = bool(has_adreno)
    i8mm = bool(has_i8mm)
    dotprod = bool(has_dotprod)
    supported = adreno and i8mm and dotprod

    reason = None
    if not adreno:
        reason = "no_adreno"
    elif not (i8mm and dotprod):
        reason = "missing_cpu_features"

    return GpuCapabilities(
        is_supported=supported,
        reason=reason,
        details={"has_adreno": adreno, "has_i8mm": i8mm, "has_dotprod": dotprod},
    )


def recommended_thread_count(cores: int | None) -> int:
    """All cores on small CPUs, 80% of them above 4 cores."""
    if not cores:
        cores = DEFAULT_CPU_CORES
    return cores if cores <= 4 else int(cores * 0.8)


# =============================================================================
# Static probe
# =============================================================================


class StaticCapabilityProbe:
    """Probe backed by a fixed device list.

    Used by the CLI (from a probe file captured on a device) and by tests.
    """

    def __init__(
        self,
        devices: Sequence[BackendDeviceInfo | Mapping[str, Any]] | None = None,
        gpu_support: GpuCapabilities | Mapping[str, Any] | None = None,
    ):
        self._devices = [BackendDeviceInfo.model_validate(d) for d in devices or []]
        self._gpu_support = (
            GpuCapabilities.model_validate(gpu_support) if gpu_support is not None else None
        )

    async def get_available_devices(self) -> list[BackendDeviceInfo]:
        return list(self._devices)

    async def check_gpu_support(self) -> GpuCapabilities:
        if self._gpu_support is not None:
            return self._gpu_support
        has_gpu = any(d.is_gpu for d in self._devices)
        return GpuCapabilities(is_supported=has_gpu, reason=None if has_gpu else "unknown")

    @classmethod
    def from_file(cls, path: Path | str) -> StaticCapabilityProbe:
        """Load a probe snapshot from YAML or JSON.

        Expected shape::

            devices:
              - {deviceName: "Adreno (TM) 740", type: gpu}
              - {deviceName: HTP0, type: npu}
            gpu_support: {is_supported: true}

        Raises:
            ProbeError: File missing, unparsable or of the wrong shape.
        """
        path = Path(path)
        if not path.exists():
            raise ProbeError(f"Probe file not found: {path}")
        try:
            content = path.read_text()
            data = json.loads(content) if path.suffix == ".json" else yaml.safe_load(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ProbeError(f"Parse error in probe file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ProbeError(f"Probe file must be a mapping (got {type(data).__name__}): {path}")

        try:
            return cls(devices=data.get("devices"), gpu_support=data.get("gpu_support"))
        except ValidationError as e:
            errors = [f"  {err['loc']}: {err['msg']}" for err in e.errors()]
            raise ProbeError(f"Invalid probe file {path}:\n" + "\n".join(errors)) from e
