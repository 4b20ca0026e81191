from __future__ import annotations

import json
from typing import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import ReminderRecord
from ..models.reminders import LegacyReminder, RecurringReminder, parse_reminders, reminder_to_record
from .database import SessionLocal
from .errors import PersistenceFailure


class SqlReminderStore:
    """
    Whole-collection snapshot store: save() replaces every stored record,
    load() returns them in the order they were saved.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    async def load(self) -> list[LegacyReminder | RecurringReminder]:
        db: Session = self._session_factory()
        try:
            rows = db.query(ReminderRecord).order_by(ReminderRecord.position).all()
            return parse_reminders([json.loads(row.payload_json) for row in rows])
        except (SQLAlchemyError, ValidationError, json.JSONDecodeError) as exc:
            raise PersistenceFailure(f"could not load reminders: {exc}") from exc
        finally:
            db.close()

    async def save(self, reminders: Sequence[LegacyReminder | RecurringReminder]) -> None:
        db: Session = self._session_factory()
        try:
            db.query(ReminderRecord).delete()
            for position, r in enumerate(reminders):
                db.add(
                    ReminderRecord(
                        position=position,
                        reminder_id=str(r.id),
                        payload_json=json.dumps(reminder_to_record(r)),
                    )
                )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise PersistenceFailure(f"could not save reminders: {exc}") from exc
        finally:
            db.close()
