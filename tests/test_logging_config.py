"""Tests for logging configuration."""

import logging

import pytest

from panelmon.logging_config import configure_logging


@pytest.fixture(autouse=True)
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


def test_level_from_environment(monkeypatch):
    """Test the level is read case-insensitively from the environment."""
    monkeypatch.setenv("PANELMON_LOG_LEVEL", "debug")

    configure_logging()

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.INFO


def test_unknown_level_defaults_to_info(monkeypatch):
    """Test an unknown level falls back to INFO."""
    monkeypatch.setenv("PANELMON_LOG_LEVEL", "LOUD")

    configure_logging()

    assert logging.getLogger().level == logging.INFO


def test_warning_level_quiets_urllib3(monkeypatch):
    """Test urllib3 follows a level above INFO."""
    monkeypatch.setenv("PANELMON_LOG_LEVEL", "WARNING")

    configure_logging()

    assert logging.getLogger("urllib3").level == logging.WARNING
