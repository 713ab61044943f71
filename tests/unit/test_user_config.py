"""Tests for user configuration loading."""

from pathlib import Path

import pytest

from inferconf.config.models import Platform
from inferconf.config.user_config import UserConfig, get_user_config_path, load_user_config
from inferconf.exceptions import ConfigError


class TestUserConfig:
    def test_default_values(self) -> None:
        config = UserConfig()
        assert config.platform == Platform.ANDROID
        assert config.verbosity == "normal"
        assert config.probe_timeout_sec == 5.0
        assert config.probe_file is None

    def test_verbosity_invalid_value(self) -> None:
        with pytest.raises(ValueError, match="Input should be 'quiet', 'normal' or 'verbose'"):
            UserConfig(verbosity="invalid")

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            UserConfig(probe_timeout_sec=0)


class TestLoadUserConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        assert load_user_config(tmp_path / "config.yaml") == UserConfig()

    def test_values_loaded(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("platform: ios\nverbosity: quiet\nprobe_file: ~/pixel.yaml\n")
        config = load_user_config(path)
        assert config.platform == Platform.IOS
        assert config.verbosity == "quiet"
        assert config.probe_file == "~/pixel.yaml"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_user_config(path) == UserConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("platform: [ios\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_user_config(path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("- ios\n")
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_user_config(path)

    def test_unknown_field(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("platfrom: ios\n")
        with pytest.raises(ConfigError, match="platfrom"):
            load_user_config(path)


class TestEnvOverrides:
    def test_platform(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INFERCONF_PLATFORM", "IOS")
        assert load_user_config(tmp_path / "config.yaml").platform == Platform.IOS

    def test_timeout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INFERCONF_PROBE_TIMEOUT", "1.5")
        assert load_user_config(tmp_path / "config.yaml").probe_timeout_sec == 1.5

    def test_env_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("platform: android\n")
        monkeypatch.setenv("INFERCONF_PLATFORM", "ios")
        assert load_user_config(path).platform == Platform.IOS

    @pytest.mark.parametrize(
        ("name", "value"),
        [("INFERCONF_PLATFORM", "windows"), ("INFERCONF_PROBE_TIMEOUT", "soon")],
    )
    def test_invalid_values_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        monkeypatch.setenv(name, value)
        assert load_user_config(tmp_path / "config.yaml") == UserConfig()


def test_user_config_path() -> None:
    path = get_user_config_path()
    assert path.name == "config.yaml"
    assert path.parent.name == "inferconf"
