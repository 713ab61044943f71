"""Constants for the inference configuration engine."""

import math
import os

from loguru import logger

# Schema version of ContextInitParams.
# Bump this together with a new step in config/migration.py.
CURRENT_CONTEXT_INIT_PARAMS_VERSION = "2.0"

# Version assumed for blobs persisted before versioning existed
LEGACY_CONTEXT_INIT_PARAMS_VERSION = "0.0"

# ContextInitParams defaults
DEFAULT_N_CTX = 2048
DEFAULT_N_BATCH = 512
DEFAULT_N_UBATCH = 512
DEFAULT_N_THREADS = 4
DEFAULT_N_GPU_LAYERS = 99  # all layers
DEFAULT_N_PARALLEL = 1  # only blocking completion is used
DEFAULT_KV_UNIFIED = True

# Pre-2.0 default context size, bumped once during migration
LEGACY_DEFAULT_N_CTX = 1024

# Probe calls that take longer than this resolve to the conservative fallback.
# Precedence: user config > INFERCONF_PROBE_TIMEOUT env var > 5 seconds
FALLBACK_PROBE_TIMEOUT_SEC = 5.0


def _probe_timeout_from_env() -> float:
    """Read INFERCONF_PROBE_TIMEOUT, ignoring anything but a positive finite number."""
    raw = os.environ.get("INFERCONF_PROBE_TIMEOUT")
    if raw is None:
        return FALLBACK_PROBE_TIMEOUT_SEC
    try:
        timeout = float(raw)
    except ValueError:
        timeout = 0.0
    if math.isfinite(timeout) and timeout > 0:
        return timeout
    logger.warning(
        f"Ignoring INFERCONF_PROBE_TIMEOUT={raw!r}, using {FALLBACK_PROBE_TIMEOUT_SEC}s"
    )
    return FALLBACK_PROBE_TIMEOUT_SEC


DEFAULT_PROBE_TIMEOUT_SEC = _probe_timeout_from_env()

# Device identifier prefix reported by Qualcomm Hexagon NPUs
HEXAGON_DEVICE_PREFIX = "HTP"

# Minimum iOS major version with usable Metal acceleration
MIN_IOS_VERSION_FOR_GPU = 18

# Fallback when the core count cannot be determined
DEFAULT_CPU_CORES = 4

# Model quantizations OpenCL can run on-GPU; everything else falls back to CPU
OPENCL_SUPPORTED_QUANTIZATIONS = frozenset({"q4_0", "q6_k"})
