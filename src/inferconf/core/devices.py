"""Device catalog and device selection.

iOS always offers the same three options (Auto, Metal, CPU); Metal supports
every flash attention mode. Android offers CPU unconditionally, plus GPU
(OpenCL) and Hexagon (NPU) when the probe reports them. OpenCL and Hexagon
only accept flash attention ``off``.
"""

from __future__ import annotations

from loguru import logger

from inferconf.config.models import ContextInitParams, FlashAttnType, Platform
from inferconf.constants import DEFAULT_N_GPU_LAYERS, DEFAULT_PROBE_TIMEOUT_SEC, HEXAGON_DEVICE_PREFIX
from inferconf.core.probe import get_available_devices
from inferconf.domain.compatibility import FlashAttnOption
from inferconf.domain.devices import DefaultDeviceConfig, DeviceOption, DeviceOptionId
from inferconf.protocols import CapabilityProbe

__all__ = [
    "apply_device_selection",
    "get_current_device_id",
    "get_default_device_config",
    "get_device_options",
    "get_flash_attn_options",
    "get_recommended_device_id",
    "is_gpu_available",
    "is_hexagon_available",
]

_ALL_FLASH_ATTN_TYPES = (FlashAttnType.AUTO, FlashAttnType.ON, FlashAttnType.OFF)
_OFF_ONLY = (FlashAttnType.OFF,)

# Wildcard matching every HTP session
HEXAGON_DEVICES_WILDCARD = f"{HEXAGON_DEVICE_PREFIX}*"

IOS_DEVICE_OPTIONS: tuple[DeviceOption, ...] = (
    DeviceOption(
        id="auto",
        label="Auto",
        description="Automatically selects Metal GPU (Recommended)",
        devices=None,
        n_gpu_layers=DEFAULT_N_GPU_LAYERS,
        default_flash_attn_type=FlashAttnType.AUTO,
        valid_flash_attn_types=_ALL_FLASH_ATTN_TYPES,
        tag="Recommended",
        platform="ios",
    ),
    DeviceOption(
        id="gpu",
        label="Metal",
        description="Explicitly use Metal GPU acceleration",
        devices=["Metal"],
        n_gpu_layers=DEFAULT_N_GPU_LAYERS,
        default_flash_attn_type=FlashAttnType.AUTO,
        valid_flash_attn_types=_ALL_FLASH_ATTN_TYPES,
        platform="ios",
    ),
    DeviceOption(
        id="cpu",
        label="CPU",
        description="CPU only (slower, for testing or compatibility)",
        devices=["CPU"],
        n_gpu_layers=0,
        default_flash_attn_type=FlashAttnType.AUTO,
        valid_flash_attn_types=_ALL_FLASH_ATTN_TYPES,
        platform="ios",
    ),
)

ANDROID_CPU_OPTION = DeviceOption(
    id="cpu",
    label="CPU",
    description="CPU only (Slowest, but works with all models)",
    devices=["CPU"],
    n_gpu_layers=0,
    default_flash_attn_type=FlashAttnType.OFF,
    valid_flash_attn_types=_ALL_FLASH_ATTN_TYPES,
    tag="Recommended",
    platform="android",
)


async def get_device_options(
    platform: Platform,
    probe: CapabilityProbe | None = None,
    timeout: float = DEFAULT_PROBE_TIMEOUT_SEC,
) -> list[DeviceOption]:
    """Build the device options offered on ``platform``.

    Args:
        platform: Host platform.
        probe: Capability probe, consulted on Android only.
        timeout: Probe timeout in seconds.

    Returns:
        Options in display order. Android always starts with CPU, so a failed
        probe still yields a usable single-entry catalog.
    """
    if platform == Platform.IOS:
        return list(IOS_DEVICE_OPTIONS)

    available = await get_available_devices(probe, timeout=timeout)
    hexagon_devices = [d for d in available if d.is_hexagon]
    gpu_device = next((d for d in available if d.is_gpu), None)

    options = [ANDROID_CPU_OPTION]

    if gpu_device is not None:
        options.append(
            DeviceOption(
                id="gpu",
                label="GPU (OpenCL)",
                description="OpenCL GPU acceleration (Only for Q4_0/Q6_K models)",
                devices=[gpu_device.device_name],
                n_gpu_layers=DEFAULT_N_GPU_LAYERS,
                default_flash_attn_type=FlashAttnType.OFF,
                valid_flash_attn_types=_OFF_ONLY,
                tag="Fastest",
                platform="android",
                device_info=gpu_device,
            )
        )

    if hexagon_devices:
        options.append(
            DeviceOption(
                id="hexagon",
                label="Hexagon",
                description="Qualcomm NPU (Experimental, fastest but may be unstable)",
                devices=[HEXAGON_DEVICES_WILDCARD],
                n_gpu_layers=DEFAULT_N_GPU_LAYERS,
                default_flash_attn_type=FlashAttnType.OFF,
                valid_flash_attn_types=_OFF_ONLY,
                tag="Experimental",
                experimental=True,
                platform="android",
                device_info=hexagon_devices[0],
            )
        )

    logger.debug(f"Device options for {platform.value}: {[o.id for o in options]}")
    return options


def apply_device_selection(params: ContextInitParams, option: DeviceOption) -> ContextInitParams:
    """Return params updated for a newly selected device option.

    ``devices`` and ``n_gpu_layers`` come from the option. ``flash_attn_type``
    is kept when the option accepts it, otherwise reset to the option's
    default (e.g. selecting OpenCL turns ``auto`` into ``off``).
    """
    updates: dict = {
        "devices": list(option.devices) if option.devices is not None else None,
        "n_gpu_layers": option.n_gpu_layers,
    }
    if not option.accepts_flash_attn(params.flash_attn_type):
        logger.info(
            f"flash_attn_type={params.flash_attn_type.value} is not supported by "
            f"{option.label}, switching to {option.default_flash_attn_type.value}"
        )
        updates["flash_attn_type"] = option.default_flash_attn_type
    return params.model_copy(update=updates)


def get_current_device_id(params: ContextInitParams, platform: Platform) -> DeviceOptionId:
    """Map stored devices back to the device option they were selected from."""
    devices = params.devices or []

    if platform == Platform.IOS:
        if not devices:
            return "cpu" if params.n_gpu_layers == 0 else "auto"
        if devices[0] == "Metal":
            return "gpu"
        if devices[0] == "CPU":
            return "cpu"
        return "auto"

    if not devices or devices[0] == "CPU":
        return "cpu"
    if devices[0].startswith(HEXAGON_DEVICE_PREFIX):
        return "hexagon"
    return "gpu"


def get_flash_attn_options(option: DeviceOption | None) -> list[FlashAttnOption]:
    """Flash attention buttons, disabling the modes the device rejects.

    Every mode is enabled when no device option is known.
    """
    return [
        FlashAttnOption(
            value=fa_type,
            disabled=option is not None and not option.accepts_flash_attn(fa_type),
        )
        for fa_type in _ALL_FLASH_ATTN_TYPES
    ]


def get_default_device_config(platform: Platform) -> DefaultDeviceConfig:
    """iOS auto-selects Metal; Android defaults to CPU for reliability."""
    if platform == Platform.IOS:
        return DefaultDeviceConfig(
            devices=None,
            n_gpu_layers=DEFAULT_N_GPU_LAYERS,
            default_flash_attn_type=FlashAttnType.AUTO,
        )
    return DefaultDeviceConfig(
        devices=["CPU"], n_gpu_layers=0, default_flash_attn_type=FlashAttnType.OFF
    )


def get_recommended_device_id(platform: Platform) -> DeviceOptionId:
    """Auto on iOS. CPU on Android; GPU and Hexagon are opt-in."""
    return "auto" if platform == Platform.IOS else "cpu"


async def is_gpu_available(
    probe: CapabilityProbe | None, timeout: float = DEFAULT_PROBE_TIMEOUT_SEC
) -> bool:
    devices = await get_available_devices(probe, timeout=timeout)
    return any(d.is_gpu for d in devices)


async def is_hexagon_available(
    probe: CapabilityProbe | None, timeout: float = DEFAULT_PROBE_TIMEOUT_SEC
) -> bool:
    devices = await get_available_devices(probe, timeout=timeout)
    return any(d.is_hexagon for d in devices)
