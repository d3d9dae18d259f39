"""
Ledger Service - One attendance record per user per UTC day and its transitions

``stage_*`` methods only stage their writes so that a caller can bundle
them with other writes in one unit of work; the public methods commit.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.timeutils import utc_day, utcnow
from app.db.unit_of_work import atomic
from app.models.attendance_record import AttendanceRecord
from app.repositories.attendance_event_repository import AttendanceEventRepository
from app.repositories.attendance_record_repository import AttendanceRecordRepository
from app.services.geofence_service import GeoPoint
from atams.logging import get_logger

logger = get_logger(__name__)


class LedgerService:
    def __init__(self) -> None:
        self.record_repo = AttendanceRecordRepository()
        self.event_repo = AttendanceEventRepository()

    def _stage_transition(
        self,
        db: Session,
        user_id: int,
        at: datetime,
        defaults: Dict[str, Any],
        changes: Dict[str, Any],
        event: Dict[str, Any]
    ) -> AttendanceRecord:
        """Upsert the (user, day) record, apply changes and append the event without committing"""
        day = utc_day(at)
        record = self.record_repo.get_or_add(db, user_id, day, defaults)
        self.record_repo.apply_changes(db, user_id, day, changes)
        self.event_repo.add_event(db, {
            "ae_record_id": record.ar_id,
            "ae_user_id": user_id,
            "ae_occurred_at": at,
            **event
        })
        return record

    @staticmethod
    def _event_fields(
        event_type: str,
        point: Optional[GeoPoint],
        accuracy: Optional[float],
        method: str,
        face_score: Optional[float],
        session_id: Optional[str]
    ) -> Dict[str, Any]:
        return {
            "ae_event_type": event_type,
            "ae_method": method,
            "ae_lat": point.lat if point else None,
            "ae_lng": point.lng if point else None,
            "ae_accuracy": accuracy,
            "ae_face_score": face_score,
            "ae_session_id": session_id
        }

    def stage_check_in(
        self,
        db: Session,
        user_id: int,
        point: Optional[GeoPoint],
        accuracy: Optional[float] = None,
        at: Optional[datetime] = None,
        method: str = "direct",
        face_score: Optional[float] = None,
        session_id: Optional[str] = None,
        proxy: Optional[Dict[str, Any]] = None
    ) -> AttendanceRecord:
        at = at or utcnow()
        changes = {"ar_status": "present", "ar_check_in_at": at}
        if proxy:
            changes.update({
                "ar_is_proxy": True,
                "ar_proxy_user_id": proxy["proxy_user_id"],
                "ar_proxy_reason": proxy.get("reason"),
                "ar_proxy_approved": True
            })

        return self._stage_transition(
            db, user_id, at,
            defaults=changes,
            changes=changes,
            event=self._event_fields("enter", point, accuracy, method, face_score, session_id)
        )

    def check_in(
        self,
        db: Session,
        user_id: int,
        point: Optional[GeoPoint],
        accuracy: Optional[float] = None,
        at: Optional[datetime] = None,
        method: str = "direct",
        face_score: Optional[float] = None,
        session_id: Optional[str] = None,
        proxy: Optional[Dict[str, Any]] = None
    ) -> AttendanceRecord:
        """
        Mark the user present for the day of ``at``

        Repeated check-ins update the same record and append another
        ``enter`` event.
        """
        at = at or utcnow()
        record = atomic(db, lambda: self.stage_check_in(
            db, user_id, point,
            accuracy=accuracy,
            at=at,
            method=method,
            face_score=face_score,
            session_id=session_id,
            proxy=proxy
        ))
        db.refresh(record)

        logger.info(
            "Attendance check-in recorded",
            extra={'extra_data': {
                "user_id": user_id,
                "date": str(record.ar_date),
                "method": method,
                "proxy": bool(proxy)
            }}
        )
        return record

    def stage_check_out(
        self,
        db: Session,
        user_id: int,
        point: Optional[GeoPoint],
        inside: bool,
        accuracy: Optional[float] = None,
        at: Optional[datetime] = None,
        method: str = "direct",
        face_score: Optional[float] = None,
        session_id: Optional[str] = None
    ) -> AttendanceRecord:
        at = at or utcnow()
        defaults = {"ar_status": "present" if inside else "absent", "ar_check_out_at": at}
        changes = {"ar_check_out_at": at}
        if not inside:
            changes["ar_status"] = "absent"

        return self._stage_transition(
            db, user_id, at,
            defaults=defaults,
            changes=changes,
            event=self._event_fields("exit", point, accuracy, method, face_score, session_id)
        )

    def check_out(
        self,
        db: Session,
        user_id: int,
        point: Optional[GeoPoint],
        inside: bool,
        accuracy: Optional[float] = None,
        at: Optional[datetime] = None,
        method: str = "direct",
        face_score: Optional[float] = None,
        session_id: Optional[str] = None
    ) -> AttendanceRecord:
        """
        Record an exit for the day of ``at``

        A missing record is created present when inside, absent when outside.
        An outside check-out forces ``absent`` regardless of prior status.
        """
        at = at or utcnow()
        record = atomic(db, lambda: self.stage_check_out(
            db, user_id, point,
            inside=inside,
            accuracy=accuracy,
            at=at,
            method=method,
            face_score=face_score,
            session_id=session_id
        ))
        db.refresh(record)

        logger.info(
            "Attendance check-out recorded",
            extra={'extra_data': {
                "user_id": user_id,
                "date": str(record.ar_date),
                "inside": inside,
                "status": record.ar_status
            }}
        )
        return record

    def proxy_check_in(
        self,
        db: Session,
        user_id: int,
        proxy_user_id: int,
        point: Optional[GeoPoint],
        accuracy: Optional[float] = None,
        reason: Optional[str] = None,
        at: Optional[datetime] = None
    ) -> AttendanceRecord:
        """Check-in on behalf of ``user_id``; proxy attendance is auto-approved"""
        return self.check_in(
            db, user_id, point,
            accuracy=accuracy,
            at=at,
            method="proxy",
            proxy={"proxy_user_id": proxy_user_id, "reason": reason}
        )

    def get_today(self, db: Session, user_id: int, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        return self.record_repo.get_by_user_date(db, user_id, utc_day(now or utcnow()))

    def list_for_user(
        self,
        db: Session,
        user_id: int,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[AttendanceRecord], int]:
        records = self.record_repo.get_user_records(db, user_id, skip=skip, limit=limit)
        total = self.record_repo.count_user_records(db, user_id)
        return records, total

    def summary_for_user(self, db: Session, user_id: int) -> Dict[str, Any]:
        counts = self.record_repo.count_by_status(db, user_id)
        present = counts.get("present", 0)
        absent = counts.get("absent", 0)
        total = present + absent
        return {
            "total_days": total,
            "present_days": present,
            "absent_days": absent,
            "attendance_rate": round(present / total * 100, 2) if total else 0.0
        }

    def list_for_date(self, db: Session, target_date: date, skip: int = 0, limit: int = 100) -> List[AttendanceRecord]:
        return self.record_repo.get_records_for_date(db, target_date, skip=skip, limit=limit)
