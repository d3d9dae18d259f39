"""
Attendance Event Repository - Data access layer for attendance events
"""
from sqlalchemy.orm import Session

from atams.db import BaseRepository
from app.models.attendance_event import AttendanceEvent


class AttendanceEventRepository(BaseRepository[AttendanceEvent]):
    def __init__(self):
        super().__init__(AttendanceEvent)

    def add_event(self, db: Session, event_data: dict) -> AttendanceEvent:
        """Stage an append-only event row (caller commits)"""
        db_event = AttendanceEvent(**event_data)
        db.add(db_event)
        return db_event
