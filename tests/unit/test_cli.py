"""Tests for the CLI module."""

import json
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from inferconf import __version__
from inferconf.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_user_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point platformdirs at an empty config dir and reset logging afterwards."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    yield
    logger.remove()


@pytest.fixture
def legacy_settings(tmp_path: Path) -> Path:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"n_context": 1024, "use_mmap": True, "n_gpu_layers": 20}))
    return path


@pytest.fixture
def probe_file(tmp_path: Path) -> Path:
    path = tmp_path / "device.yaml"
    path.write_text(
        "devices:\n"
        "  - {deviceName: CPU, type: cpu}\n"
        "  - {deviceName: 'Adreno (TM) 740', type: gpu}\n"
        "  - {deviceName: HTP0, type: npu}\n"
    )
    return path


class TestMainApp:
    def test_help_displays(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "On-device inference configuration engine" in result.stdout

    def test_version_displays(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"inferconf v{__version__}" in result.stdout


class TestMigrateCommand:
    def test_json_output(self, legacy_settings):
        result = runner.invoke(
            app, ["--quiet", "migrate", str(legacy_settings), "--platform", "android", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["version"] == "2.0"
        assert data["n_ctx"] == 2048
        assert data["n_gpu_layers"] == 20
        assert data["flash_attn_type"] == "off"

    def test_table_output(self, legacy_settings):
        result = runner.invoke(app, ["--quiet", "migrate", str(legacy_settings)])
        assert result.exit_code == 0
        assert "n_ctx" in result.stdout

    def test_write_output(self, legacy_settings, tmp_path):
        out = tmp_path / "migrated.yaml"
        result = runner.invoke(
            app, ["--quiet", "migrate", str(legacy_settings), "--platform", "ios", "-o", str(out)]
        )
        assert result.exit_code == 0
        assert out.exists()
        assert "version: '2.0'" in out.read_text()

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["--quiet", "migrate", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestCheckCommand:
    def test_safe_settings(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(
            json.dumps({"version": "2.0", "cache_type_v": "q8_0", "flash_attn_type": "on"})
        )
        result = runner.invoke(app, ["--quiet", "check", str(path), "--platform", "ios"])
        assert result.exit_code == 0
        assert "metal" in result.stdout

    def test_unsafe_settings(self, tmp_path, probe_file):
        path = tmp_path / "settings.json"
        path.write_text(
            json.dumps({"version": "2.0", "cache_type_v": "q4_0", "flash_attn_type": "auto"})
        )
        result = runner.invoke(
            app,
            ["--quiet", "check", str(path), "--platform", "android", "--probe", str(probe_file)],
        )
        assert result.exit_code == 1
        assert "opencl" in result.stdout
        assert "cache_type_v=q4_0" in result.stdout

    def test_bad_probe_file(self, legacy_settings, tmp_path):
        result = runner.invoke(
            app, ["--quiet", "check", str(legacy_settings), "--probe", str(tmp_path / "x.yaml")]
        )
        assert result.exit_code == 1
        assert "Probe file not found" in result.stdout


class TestMatrixCommand:
    def test_full_matrix(self):
        result = runner.invoke(app, ["--quiet", "matrix"])
        assert result.exit_code == 0
        assert "hexagon" in result.stdout
        assert "unsafe" in result.stdout

    def test_single_combination(self):
        result = runner.invoke(app, ["--quiet", "matrix", "-b", "metal", "-f", "on"])
        assert result.exit_code == 0
        assert "IQ4_NL" in result.stdout

    def test_invalid_backend(self):
        result = runner.invoke(app, ["matrix", "--backend", "vulkan"])
        assert result.exit_code != 0


class TestDevicesCommand:
    def test_ios(self):
        result = runner.invoke(app, ["--quiet", "devices", "--platform", "ios"])
        assert result.exit_code == 0
        assert "Metal" in result.stdout
        assert "Recommended: auto" in result.stdout

    def test_android_with_probe(self, probe_file):
        result = runner.invoke(
            app, ["--quiet", "devices", "--platform", "android", "--probe", str(probe_file)]
        )
        assert result.exit_code == 0
        assert "hexagon" in result.stdout
        assert "Recommended: cpu" in result.stdout

    def test_user_config_platform(self, tmp_path):
        config_dir = tmp_path / "xdg" / "inferconf"
        config_dir.mkdir(parents=True)
        (config_dir / "config.yaml").write_text("platform: ios\n")
        result = runner.invoke(app, ["--quiet", "devices"])
        assert result.exit_code == 0
        assert "Recommended: auto" in result.stdout
