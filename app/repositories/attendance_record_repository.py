"""
Attendance Record Repository - Data access layer for daily attendance records
"""
from typing import Optional, List, Dict, Any
from datetime import date
from sqlalchemy.orm import Session
from sqlalchemy import and_, update

from atams.db import BaseRepository
from app.models.attendance_record import AttendanceRecord


class AttendanceRecordRepository(BaseRepository[AttendanceRecord]):
    def __init__(self):
        super().__init__(AttendanceRecord)

    def get_by_user_date(self, db: Session, user_id: int, target_date: date) -> Optional[AttendanceRecord]:
        """Get user's record for a calendar day using ORM"""
        return db.query(AttendanceRecord).filter(
            and_(
                AttendanceRecord.ar_user_id == user_id,
                AttendanceRecord.ar_date == target_date
            )
        ).first()

    def get_or_add(
        self,
        db: Session,
        user_id: int,
        target_date: date,
        defaults: Dict[str, Any]
    ) -> AttendanceRecord:
        """
        Fetch the (user, date) record, staging an insert with defaults if missing (caller commits).

        Two concurrent inserts for the same pair cannot both succeed; the
        loser's flush raises IntegrityError and its unit of work is rerun,
        finding the winner's row.
        """
        existing = self.get_by_user_date(db, user_id, target_date)
        if existing:
            return existing

        db_record = AttendanceRecord(ar_user_id=user_id, ar_date=target_date, **defaults)
        db.add(db_record)
        db.flush()
        return db_record

    def apply_changes(self, db: Session, user_id: int, target_date: date, changes: Dict[str, Any]) -> None:
        """Apply field changes with a single UPDATE statement (caller commits)"""
        stmt = (
            update(AttendanceRecord)
            .where(
                and_(
                    AttendanceRecord.ar_user_id == user_id,
                    AttendanceRecord.ar_date == target_date
                )
            )
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        db.execute(stmt)

    def get_user_records(self, db: Session, user_id: int, skip: int = 0, limit: int = 50) -> List[AttendanceRecord]:
        """Get user's records, newest day first, using ORM"""
        return db.query(AttendanceRecord).filter(
            AttendanceRecord.ar_user_id == user_id
        ).order_by(AttendanceRecord.ar_date.desc()).offset(skip).limit(limit).all()

    def count_user_records(self, db: Session, user_id: int) -> int:
        """Count user's records using native SQL"""
        query = """
            SELECT COUNT(*)
            FROM attendance_records
            WHERE ar_user_id = :user_id
        """
        return self.execute_raw_sql_scalar(db, query, {"user_id": user_id}) or 0

    def count_by_status(self, db: Session, user_id: int) -> Dict[str, int]:
        """Count user's records per status using native SQL"""
        query = """
            SELECT ar_status, COUNT(*) AS total
            FROM attendance_records
            WHERE ar_user_id = :user_id
            GROUP BY ar_status
        """
        rows = self.execute_raw_sql_dict(db, query, {"user_id": user_id})
        return {row["ar_status"]: row["total"] for row in rows}

    def get_records_for_date(self, db: Session, target_date: date, skip: int = 0, limit: int = 100) -> List[AttendanceRecord]:
        """Get every user's record for a calendar day using ORM"""
        return db.query(AttendanceRecord).filter(
            AttendanceRecord.ar_date == target_date
        ).order_by(AttendanceRecord.ar_user_id.asc()).offset(skip).limit(limit).all()
