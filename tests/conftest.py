import random
from datetime import datetime, timedelta

import pytest

from exam_prep.db import MemorySlot
from exam_prep.generator import TemplateGenerator
from exam_prep.store import AppStore


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 15, 9, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    return str(tmp_path / "test_exam_prep.db")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def slot():
    return MemorySlot()


@pytest.fixture
def store(slot, clock):
    """A fresh store backed by memory, with a seeded generator and a fake clock."""
    return AppStore(slot, TemplateGenerator(random.Random(0)), clock=clock)


@pytest.fixture
def demo_store(store):
    store.authenticate("demo@example.com", "password")
    return store


@pytest.fixture
def subject(demo_store):
    return demo_store.add_subject("Algebra", "Math", "medium")
