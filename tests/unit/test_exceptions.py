"""Tests for exception hierarchy."""

import pytest

from inferconf.exceptions import ConfigError, InferConfError, ProbeError


class TestExceptionHierarchy:
    def test_all_exceptions_inherit_from_base(self):
        for exc_class in (ConfigError, ProbeError):
            assert issubclass(exc_class, InferConfError)

    def test_base_exception_is_exception(self):
        assert issubclass(InferConfError, Exception)

    def test_catchable_as_base(self):
        with pytest.raises(InferConfError, match="bad settings"):
            raise ConfigError("bad settings")
