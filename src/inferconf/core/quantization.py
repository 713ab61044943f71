"""Model file quantization detection and OpenCL compatibility."""

from __future__ import annotations

from inferconf.config.models import Platform
from inferconf.constants import OPENCL_SUPPORTED_QUANTIZATIONS
from inferconf.domain.devices import DeviceOption, QuantizationCheck

__all__ = ["QUANTIZATION_PATTERNS", "detect_quantization_type", "validate_model_quantization_for_device"]

# Checked in order, first substring match wins (q5_k_m before q5_1, etc.)
QUANTIZATION_PATTERNS: tuple[str, ...] = (
    "f32",
    "f16",
    "q8_0",
    "q6_k",
    "q5_k_m",
    "q5_k_s",
    "q5_1",
    "q5_0",
    "q4_k_m",
    "q4_k_s",
    "q4_1",
    "q4_0",
    "q3_k_l",
    "q3_k_m",
    "q3_k_s",
    "q2_k",
    "iq4_nl",
)

_VALID = QuantizationCheck(valid=True)


def detect_quantization_type(filename: str) -> str | None:
    """Detect the quantization of a model from its file name.

    Returns:
        Lowercase quantization tag, or None if no known pattern matches.
    """
    normalized = filename.lower()
    return next((p for p in QUANTIZATION_PATTERNS if p in normalized), None)


def validate_model_quantization_for_device(
    filename: str,
    option: DeviceOption,
    platform: Platform,
) -> QuantizationCheck:
    """Check whether a model will actually run on the selected device.

    OpenCL only runs Q4_0 and Q6_K on the GPU; other quantizations silently
    fall back to CPU. Metal, Hexagon and CPU run every quantization, and an
    undetectable quantization is assumed fine.
    """
    quant = detect_quantization_type(filename)
    if quant is None or platform != Platform.ANDROID:
        return _VALID

    may_use_opencl = option.id == "gpu" or (option.id == "auto" and option.n_gpu_layers > 0)
    if not may_use_opencl or quant in OPENCL_SUPPORTED_QUANTIZATIONS:
        return _VALID

    return QuantizationCheck(
        valid=False,
        warning=(
            "OpenCL only supports Q4_0 and Q6_K quantization.\n\n"
            f"This model ({quant.upper()}) will fall back to CPU, "
            "resulting in very slow inference (~5-10 tokens/sec)."
        ),
        recommendation=(
            "Recommendations:\n"
            "• Use a Q4_0 or Q6_K version of this model\n"
            "• Switch to Hexagon NPU (if available)\n"
            "• Use CPU only (slower but works)"
        ),
    )
