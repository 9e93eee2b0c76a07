import os
import sys
from typing import cast

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication

from fakes import FakeCapability, FakeEnvironment


@pytest.fixture(scope="session")
def qapp() -> QApplication:
    """Ensure a QApplication exists for timers and widgets."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return cast(QApplication, app)


@pytest.fixture
def capability() -> FakeCapability:
    return FakeCapability()


@pytest.fixture
def environment(capability) -> FakeEnvironment:
    return FakeEnvironment(capability, auto_ready=True)
