"""Shared fixtures for panelmon tests."""

import os

import pytest

# Qt widgets need a platform plugin; tests never open a real display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="module")
def qapp():
    """Create QApplication instance for tests."""
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app
