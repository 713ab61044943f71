"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from tests.fakes import ADRENO_GPU, CPU_DEVICE, HEXAGON_NPU, FakeCapabilityProbe


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep INFERCONF_* variables from the developer's shell out of tests."""
    for name in ("INFERCONF_PLATFORM", "INFERCONF_PROBE_TIMEOUT", "INFERCONF_VERBOSITY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cpu_only_probe() -> FakeCapabilityProbe:
    return FakeCapabilityProbe(devices=[CPU_DEVICE])


@pytest.fixture
def snapdragon_probe() -> FakeCapabilityProbe:
    """Android handset with CPU, Adreno GPU and Hexagon NPU."""
    return FakeCapabilityProbe(devices=[CPU_DEVICE, ADRENO_GPU, HEXAGON_NPU])
