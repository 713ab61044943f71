"""Backend resolution from a device selection."""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from inferconf.config.models import BackendType, Platform
from inferconf.constants import DEFAULT_PROBE_TIMEOUT_SEC, HEXAGON_DEVICE_PREFIX
from inferconf.core.probe import get_available_devices
from inferconf.protocols import CapabilityProbe

__all__ = ["backend_for_device", "infer_backend_type"]


def backend_for_device(device: str, platform: Platform) -> BackendType:
    """Map one explicit device identifier to its backend.

    ``Metal`` and ``CPU`` match case-insensitively, ``HTP*`` is Hexagon. Any
    other identifier is a GPU (Adreno, Mali, ...) on Android; elsewhere it is
    unrecognised and conservatively treated as CPU.
    """
    device_lower = device.lower()
    if device_lower == "metal":
        return BackendType.METAL
    if device_lower == "cpu":
        return BackendType.CPU
    if device.startswith(HEXAGON_DEVICE_PREFIX):
        return BackendType.HEXAGON
    if platform == Platform.ANDROID:
        return BackendType.OPENCL
    return BackendType.CPU


async def infer_backend_type(
    devices: Sequence[str] | None,
    platform: Platform,
    probe: CapabilityProbe | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> BackendType:
    """Resolve the backend that a device selection will run on.

    Only the first device matters. With no devices (auto-select), iOS always
    runs on Metal and Android uses OpenCL if the probe reports a GPU,
    otherwise CPU. A failing probe reports no devices, which resolves to CPU.

    Args:
        devices: Configured device identifiers, None/empty for auto-select.
        platform: Host platform.
        probe: Capability probe, consulted only for Android auto-select.
        timeout: Probe timeout in seconds.

    Returns:
        The resolved BackendType.
    """
    if devices:
        return backend_for_device(devices[0], platform)

    if platform == Platform.IOS:
        return BackendType.METAL

    available = await get_available_devices(probe, timeout=timeout)
    if any(d.is_gpu for d in available):
        return BackendType.OPENCL

    logger.debug("Backend: no GPU reported for auto-select, using CPU")
    return BackendType.CPU
