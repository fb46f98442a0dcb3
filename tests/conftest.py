# tests/conftest.py

import os
from pathlib import Path

import pytest
from PySide6.QtWidgets import QApplication

from core.models import TimerSettings
from core.storage import Storage
from core.task_tree import TaskTree
from core.timer_engine import TimerEngine

from .fakes import FakeNotifier, SignalRecorder


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """
    One offscreen Qt application for the whole run; page tests need widgets.
    QTimer needs it to be armed; no event loop is ever started, ticks are
    driven by calling TimerEngine.advance() directly.
    """
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture()
def settings() -> TimerSettings:
    """Short durations keep countdown tests readable."""
    return TimerSettings(
        work_duration=10,
        break_duration=3,
        long_break_duration=6,
        sessions_before_long_break=4,
    )


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def engine(settings: TimerSettings, notifier: FakeNotifier):
    engine = TimerEngine(settings, notifier)
    yield engine
    engine.cleanup()


@pytest.fixture()
def tree() -> TaskTree:
    return TaskTree()


@pytest.fixture()
def storage(tmp_path: Path) -> Storage:
    return Storage(str(tmp_path / "pomodoro.db"))


@pytest.fixture()
def recorder() -> SignalRecorder:
    return SignalRecorder()
