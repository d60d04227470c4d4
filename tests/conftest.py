"""Shared pytest fixtures for the course generation engine.

Provides:
- ``clock``: manually advanced monotonic clock
- ``sleep``: records requested delays, advances ``clock``, never waits
- ``store``: fresh InMemoryLessonStore per test
"""

from __future__ import annotations

import pytest

from services.lesson_store import InMemoryLessonStore
from tests.fakes import FakeClock, RecordingSleep


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock)


@pytest.fixture
def store() -> InMemoryLessonStore:
    """Fresh lesson store — isolated per test."""
    return InMemoryLessonStore()
