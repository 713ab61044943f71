"""Tests for Hexagon NPU detection."""

import pytest

from inferconf.core.hexagon import (
    HEXAGON_VERSION_MAP,
    detect_hexagon_version,
    get_hexagon_display_name,
    get_hexagon_info,
    get_soc_for_hexagon_version,
    has_supported_hexagon,
    is_hexagon_version_supported,
)
from tests.fakes import ADRENO_GPU, CPU_DEVICE, HEXAGON_NPU, FailingProbe, FakeCapabilityProbe


class TestVersionMapping:
    @pytest.mark.parametrize(
        ("chipset", "expected"),
        [
            ("Qualcomm Snapdragon 865", "690"),
            ("SM8450", "730"),
            ("snapdragon 8 gen 2", "750"),
            ("Qualcomm SM8650", "790"),
            ("Snapdragon 8 Elite", "810"),
            ("Exynos 2400", None),
            (None, None),
            ("", None),
        ],
    )
    def test_detect(self, chipset, expected):
        assert detect_hexagon_version(chipset) == expected

    def test_soc_and_display_name(self):
        assert get_soc_for_hexagon_version("750") == "Snapdragon 8 Gen 2"
        assert get_soc_for_hexagon_version("999") == "Unknown"
        assert get_hexagon_display_name("790") == "Hexagon 790"

    def test_supported_versions(self):
        assert all(is_hexagon_version_supported(v) for v in HEXAGON_VERSION_MAP)
        assert not is_hexagon_version_supported("680")


class TestGetHexagonInfo:
    @pytest.mark.asyncio
    async def test_detected(self):
        probe = FakeCapabilityProbe(
            devices=[CPU_DEVICE, ADRENO_GPU, HEXAGON_NPU, {"deviceName": "HTP1", "type": "npu"}]
        )
        info = await get_hexagon_info(probe, chipset="SM8650")
        assert len(info) == 1
        assert info[0].version == "790"
        assert info[0].device_name == "HTP0, HTP1"
        assert info[0].soc == "Snapdragon 8 Gen 3"
        assert info[0].supported is True
        assert await has_supported_hexagon(probe, chipset="SM8650") is True

    @pytest.mark.asyncio
    async def test_unknown_chipset(self):
        probe = FakeCapabilityProbe(devices=[HEXAGON_NPU])
        assert await get_hexagon_info(probe) == []
        assert await has_supported_hexagon(probe) is False

    @pytest.mark.asyncio
    async def test_no_htp_device(self):
        probe = FakeCapabilityProbe(devices=[CPU_DEVICE, ADRENO_GPU])
        assert await get_hexagon_info(probe, chipset="SM8650") == []

    @pytest.mark.asyncio
    async def test_probe_failure(self):
        assert await get_hexagon_info(FailingProbe(), chipset="SM8650") == []
