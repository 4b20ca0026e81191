from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.orm import sessionmaker

from nudge.core.database import build_engine
from nudge.core.errors import PersistenceFailure
from nudge.core.store import SqlReminderStore
from nudge.models import ReminderRecord
from nudge.models.reminders import parse_reminders, reminder_to_record

RECORDS = [
    {
        "id": 3,
        "title": "Stretch",
        "completed": False,
        "tags": ["health"],
        "schedules": [
            {"kind": "interval", "intervalValue": 45, "intervalUnit": "minutes", "intervalEnd": "2024-12-31T18:00:00"},
            {"kind": "complex", "type": "monthly", "time": "10:00", "dayOfMonth": 1},
        ],
        "nextExecutions": [
            {"scheduleIndex": 0, "time": "2024-03-13T12:45:00", "notified": False},
            {"scheduleIndex": 1, "time": "2024-04-01T10:00:00", "notified": True},
        ],
    },
    {"id": "b", "title": "Legacy", "description": None, "time": "2024-03-13T08:00:00", "notified": True},
    {"id": "a", "title": "Another", "schedules": [{"kind": "unknown-kind", "x": 1}]},
]


def test_save_then_load_is_a_fixed_point(session_factory):
    store = SqlReminderStore(session_factory)
    asyncio.run(store.save(parse_reminders(RECORDS)))

    loaded = asyncio.run(store.load())
    assert [reminder_to_record(r) for r in loaded] == RECORDS

    asyncio.run(store.save(loaded))
    assert [reminder_to_record(r) for r in asyncio.run(store.load())] == RECORDS


def test_save_replaces_the_whole_collection(session_factory):
    store = SqlReminderStore(session_factory)
    asyncio.run(store.save(parse_reminders(RECORDS)))
    asyncio.run(store.save(parse_reminders(RECORDS[1:2])))

    db = session_factory()
    try:
        rows = db.query(ReminderRecord).all()
    finally:
        db.close()
    assert [row.reminder_id for row in rows] == ["b"]


def test_load_from_empty_store(session_factory):
    assert asyncio.run(SqlReminderStore(session_factory).load()) == []


def test_missing_tables_raise_persistence_failure(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    store = SqlReminderStore(sessionmaker(bind=engine))
    with pytest.raises(PersistenceFailure):
        asyncio.run(store.load())
    with pytest.raises(PersistenceFailure):
        asyncio.run(store.save(parse_reminders(RECORDS)))


def test_corrupt_payload_raises_persistence_failure(session_factory):
    db = session_factory()
    try:
        db.add(ReminderRecord(position=0, reminder_id="x", payload_json="{not json"))
        db.commit()
    finally:
        db.close()

    with pytest.raises(PersistenceFailure):
        asyncio.run(SqlReminderStore(session_factory).load())
