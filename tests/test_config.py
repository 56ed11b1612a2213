"""Tests for environment-driven configuration parsing."""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import config


class TestParsePollTimeout:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_unset_uses_default(self, raw) -> None:
        assert config._parse_poll_timeout(raw) == config.DEFAULT_POLL_TIMEOUT

    def test_numeric(self) -> None:
        assert config._parse_poll_timeout("25") == 25.0
        assert config._parse_poll_timeout("2.5") == 2.5

    @pytest.mark.parametrize("raw", ["soon", "-3"])
    def test_invalid_uses_default(self, raw) -> None:
        assert config._parse_poll_timeout(raw) == config.DEFAULT_POLL_TIMEOUT


class TestParseBool:
    @pytest.mark.parametrize("raw", ["1", "true", "YES", " on "])
    def test_truthy(self, raw) -> None:
        assert config._parse_bool(raw) is True

    @pytest.mark.parametrize("raw", [None, "", "0", "false", "nope"])
    def test_falsy(self, raw) -> None:
        assert config._parse_bool(raw) is False
