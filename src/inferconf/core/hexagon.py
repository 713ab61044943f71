"""Hexagon NPU detection.

Probes report HTP sessions without version metadata, so the Hexagon version
is inferred from the chipset name.
"""

from __future__ import annotations

from loguru import logger

from inferconf.constants import DEFAULT_PROBE_TIMEOUT_SEC
from inferconf.core.probe import get_available_devices
from inferconf.domain.devices import HexagonInfo
from inferconf.protocols import CapabilityProbe

__all__ = [
    "HEXAGON_VERSION_MAP",
    "detect_hexagon_version",
    "get_hexagon_display_name",
    "get_hexagon_info",
    "get_soc_for_hexagon_version",
    "has_supported_hexagon",
    "is_hexagon_version_supported",
]

# Hexagon version -> SoC names it ships in (first entry is the display SoC)
HEXAGON_VERSION_MAP: dict[str, tuple[str, ...]] = {
    "690": ("Snapdragon 855", "Snapdragon 865", "SM8150", "SM8250"),
    "730": ("Snapdragon 888", "Snapdragon 8 Gen 1", "SM8350", "SM8450"),
    "750": ("Snapdragon 8 Gen 2", "SM8550"),
    "790": ("Snapdragon 8 Gen 3", "SM8650"),
    "810": ("Snapdragon 8 Elite", "SM8750"),
}


def detect_hexagon_version(chipset: str | None) -> str | None:
    """Infer the Hexagon version from a chipset/SoC name (case-insensitive)."""
    if not chipset:
        return None
    chipset_lower = chipset.lower()
    for version, socs in HEXAGON_VERSION_MAP.items():
        if any(soc.lower() in chipset_lower for soc in socs):
            return version
    return None


def get_soc_for_hexagon_version(version: str) -> str:
    socs = HEXAGON_VERSION_MAP.get(version)
    return socs[0] if socs else "Unknown"


def get_hexagon_display_name(version: str) -> str:
    return f"Hexagon {version}"


def is_hexagon_version_supported(version: str) -> bool:
    """Every mapped version is supported."""
    return version in HEXAGON_VERSION_MAP


async def get_hexagon_info(
    probe: CapabilityProbe | None,
    chipset: str | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> list[HexagonInfo]:
    """Describe the Hexagon NPU on this device.

    All HTP sessions on one device share a version, so at most one entry is
    returned, naming every session. Empty when no HTP device is reported or
    the chipset is unknown.
    """
    devices = await get_available_devices(probe, timeout=timeout)
    names = [str(d.device_name) for d in devices if d.is_hexagon]
    version = detect_hexagon_version(chipset)

    if not names or version is None:
        if names:
            logger.debug(f"Hexagon: {len(names)} HTP device(s) but unknown chipset {chipset!r}")
        return []

    return [
        HexagonInfo(
            version=version,
            device_name=", ".join(names),
            soc=get_soc_for_hexagon_version(version),
            supported=is_hexagon_version_supported(version),
        )
    ]


async def has_supported_hexagon(
    probe: CapabilityProbe | None,
    chipset: str | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> bool:
    return any(info.supported for info in await get_hexagon_info(probe, chipset, timeout))
