"""Protocol definitions for external collaborators.

The capability probe is the only hardware-facing dependency of the engine.
It is injected as an argument so that both platforms can be exercised in
the same process and tests can substitute a fake.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from inferconf.domain.devices import BackendDeviceInfo, GpuCapabilities


@runtime_checkable
class CapabilityProbe(Protocol):
    """Protocol for querying the compute devices of the current hardware."""

    async def get_available_devices(self) -> Sequence[BackendDeviceInfo | Mapping[str, Any]]:
        """List available compute devices.

        Returns:
            Devices as BackendDeviceInfo or raw mappings with ``deviceName``
            and ``type`` keys. Implementations should return an empty list
            on failure; the engine also guards against exceptions.
        """
        ...

    async def check_gpu_support(self) -> GpuCapabilities:
        """Report whether GPU acceleration is supported."""
        ...
