from __future__ import annotations

import copy
from datetime import datetime

import pytest
from sqlalchemy.orm import sessionmaker

import nudge.models  # noqa: F401  (registers tables on Base)
from nudge.core.database import Base, build_engine
from nudge.core.errors import PersistenceFailure
from nudge.models.reminders import parse_reminders, reminder_to_record

# Wednesday
NOW = datetime(2024, 3, 13, 12, 0)


class MemoryStore:
    def __init__(self, records=None):
        self.records = list(records or [])
        self.fail_load = False
        self.fail_save = False
        self.saves = 0

    async def load(self):
        if self.fail_load:
            raise PersistenceFailure("store offline")
        return parse_reminders(copy.deepcopy(self.records))

    async def save(self, reminders):
        if self.fail_save:
            raise PersistenceFailure("disk full")
        self.saves += 1
        self.records = [reminder_to_record(r) for r in reminders]


class RecordingNotifier:
    def __init__(self):
        self.presented = []
        self.dismissed = []

    async def present(self, reminder_id, title, body, actions=("complete", "snooze")):
        self.presented.append((reminder_id, title, body, tuple(actions)))

    async def dismiss(self, reminder_id):
        self.dismissed.append(reminder_id)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def notifier():
    return RecordingNotifier()
