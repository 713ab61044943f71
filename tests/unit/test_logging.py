"""Tests for logging configuration."""

import pytest
from loguru import logger

from inferconf.logging import _get_verbosity_from_env, setup_logging


class TestSetupLogging:
    def teardown_method(self):
        """Reset logger after each test."""
        logger.remove()

    def test_setup_logging_default(self):
        setup_logging()
        logger.info("test message")

    def test_setup_logging_json_output(self):
        setup_logging(json_output=True)
        logger.info("json test")

    def test_quiet_hides_info(self, capsys):
        setup_logging(verbosity="quiet")
        logger.info("hidden message")
        logger.warning("shown message")
        err = capsys.readouterr().err
        assert "hidden message" not in err
        assert "shown message" in err

    def test_verbose_shows_debug(self, capsys):
        setup_logging(verbosity="verbose")
        logger.debug("debug detail")
        assert "debug detail" in capsys.readouterr().err

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "inferconf.log"
        setup_logging(verbosity="quiet", log_file=str(log_file))
        logger.debug("to file only")
        logger.remove()
        assert "to file only" in log_file.read_text()


class TestVerbosityFromEnv:
    @pytest.mark.parametrize("value", ["quiet", "VERBOSE", "normal"])
    def test_valid(self, monkeypatch, value):
        monkeypatch.setenv("INFERCONF_VERBOSITY", value)
        assert _get_verbosity_from_env() == value.lower()

    def test_invalid_falls_back(self, monkeypatch):
        monkeypatch.setenv("INFERCONF_VERBOSITY", "chatty")
        assert _get_verbosity_from_env() == "normal"
