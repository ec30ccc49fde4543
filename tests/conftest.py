"""Shared pytest fixtures for the PureRate test suite."""

from datetime import datetime, timedelta

import pytest

from fakes import FakeController, FakeHAL, RecordingNotifier, ScriptedLogSource
from purerate.engine import ReconciliationEngine


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self._now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def hal():
    return FakeHAL()


@pytest.fixture
def controller():
    return FakeController()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def log_source():
    return ScriptedLogSource()


@pytest.fixture
def engine(controller, notifier):
    return ReconciliationEngine(controller, notifier, clock=TickingClock())
