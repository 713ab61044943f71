"""Domain value types shared by the rule engine and the device catalog."""

from inferconf.domain.compatibility import (
    SAFE,
    CacheTypeOption,
    CompatibilityVerdict,
    FlashAttnOption,
)
from inferconf.domain.devices import (
    UNSUPPORTED_GPU,
    BackendDeviceInfo,
    DefaultDeviceConfig,
    DeviceOption,
    GpuCapabilities,
    HexagonInfo,
    QuantizationCheck,
)

__all__ = [
    "SAFE",
    "UNSUPPORTED_GPU",
    "BackendDeviceInfo",
    "CacheTypeOption",
    "CompatibilityVerdict",
    "DefaultDeviceConfig",
    "DeviceOption",
    "FlashAttnOption",
    "GpuCapabilities",
    "HexagonInfo",
    "QuantizationCheck",
]
