from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from ..core.database import Base


class ReminderRecord(Base):
    __tablename__ = "reminder_records"

    # position in the saved collection
    position = Column(Integer, primary_key=True)
    reminder_id = Column(String, nullable=False, index=True)
    payload_json = Column(Text, nullable=False)

    saved_at = Column(DateTime, default=datetime.utcnow)
