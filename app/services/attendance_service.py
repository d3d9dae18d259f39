"""
Attendance Service - Verification pipeline for direct, proxy and token-scan attendance
"""
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError
from app.core.security import can_proxy_attend, resolve_role
from app.core.timeutils import utcnow
from app.db.unit_of_work import atomic
from app.models.attendance_record import AttendanceRecord
from app.models.verification_session import VerificationSession
from app.repositories.verification_session_repository import (
    VerificationSessionRepository,
    VerificationAttemptRepository,
)
from app.services.face_service import FaceService
from app.services.fraud_service import FraudService
from app.services.geofence_service import (
    GeofenceEvaluation,
    GeofenceService,
    GeoPoint,
    geofence_service,
    parse_location,
)
from app.services.ledger_service import LedgerService
from app.services.notification_service import (
    ATTENDANCE_UPDATE,
    FACULTY_ROOM,
    NOTIFICATION,
    STUDENT_EXIT,
    NotificationService,
    notification_service,
    user_room,
)
from app.services.token_service import TokenService
from atams.logging import get_logger

logger = get_logger(__name__)

SCAN_METHOD = "qr_face_verification"


@dataclass
class ScanOutcome:
    record: AttendanceRecord
    face_verified: bool
    face_score: float
    session_id: str
    message: str


class AttendanceService:
    def __init__(
        self,
        geofence: Optional[GeofenceService] = None,
        notifier: Optional[NotificationService] = None
    ) -> None:
        self.geofence_service = geofence or geofence_service
        self.notifier = notifier or notification_service
        self.token_service = TokenService()
        self.face_service = FaceService()
        self.fraud_service = FraudService()
        self.ledger_service = LedgerService()
        self.session_repo = VerificationSessionRepository()
        self.attempt_repo = VerificationAttemptRepository()

    def _locate(self, location: Any) -> tuple:
        point, accuracy = parse_location(location)
        return point, accuracy, self.geofence_service.evaluate(point)

    @staticmethod
    def _outside_campus(evaluation: GeofenceEvaluation) -> VerificationError:
        return VerificationError(
            ErrorCode.OUTSIDE_CAMPUS,
            "You must be on campus to mark attendance",
            details={
                "distance": round(evaluation.distance, 2),
                "allowed_radius": evaluation.radius
            }
        )

    def _notify(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            self.notifier.emit(room, event, payload)
        except Exception:
            logger.exception("Notification emit failed", extra={'extra_data': {"room": room, "event": event}})

    def _notify_check_in(self, record: AttendanceRecord, method: str) -> None:
        payload = {
            "user_id": record.ar_user_id,
            "status": record.ar_status,
            "date": str(record.ar_date),
            "check_in_at": record.ar_check_in_at,
            "method": method,
            "is_proxy": record.ar_is_proxy
        }
        self._notify(FACULTY_ROOM, ATTENDANCE_UPDATE, payload)
        self._notify(user_room(record.ar_user_id), NOTIFICATION, {
            "type": "attendance",
            "message": "Attendance marked successfully",
            "date": str(record.ar_date)
        })

    def _notify_check_out(self, record: AttendanceRecord, inside: bool) -> None:
        self._notify(FACULTY_ROOM, STUDENT_EXIT, {
            "user_id": record.ar_user_id,
            "status": record.ar_status,
            "date": str(record.ar_date),
            "check_out_at": record.ar_check_out_at,
            "inside_campus": inside
        })

    def check_in(self, db: Session, user_id: int, location: Any, now: Optional[datetime] = None) -> AttendanceRecord:
        """
        Direct check-in

        Raises:
            VerificationError: LOCATION_REQUIRED, INVALID_LOCATION or OUTSIDE_CAMPUS
        """
        point, accuracy, evaluation = self._locate(location)
        if not evaluation.inside:
            raise self._outside_campus(evaluation)

        record = self.ledger_service.check_in(db, user_id, point, accuracy=accuracy, at=now or utcnow())
        self._notify_check_in(record, "direct")
        return record

    def check_out(self, db: Session, user_id: int, location: Any, now: Optional[datetime] = None) -> AttendanceRecord:
        """Direct check-out; leaving from outside the geofence marks the day absent"""
        point, accuracy, evaluation = self._locate(location)

        record = self.ledger_service.check_out(
            db, user_id, point,
            inside=evaluation.inside,
            accuracy=accuracy,
            at=now or utcnow()
        )
        self._notify_check_out(record, evaluation.inside)
        return record

    def proxy_check_in(
        self,
        db: Session,
        current_user: Dict[str, Any],
        subject_user_id: int,
        location: Any,
        reason: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> AttendanceRecord:
        """
        Check in another user on their behalf

        Role and opt-in checks run before any location work.

        Raises:
            VerificationError: UNAUTHORIZED_PROXY, PROXY_NOT_ALLOWED, then the
                direct check-in errors
        """
        role = resolve_role(current_user)
        if not can_proxy_attend(role):
            raise VerificationError(
                ErrorCode.UNAUTHORIZED_PROXY,
                "Not authorized to mark proxy attendance",
                details={"role": role.value}
            )

        policy = self.face_service.get_policy(db, subject_user_id)
        if not policy["allow_proxy_attendance"]:
            raise VerificationError(
                ErrorCode.PROXY_NOT_ALLOWED,
                "User has not allowed proxy attendance",
                details={"user_id": subject_user_id}
            )

        point, accuracy, evaluation = self._locate(location)
        if not evaluation.inside:
            raise self._outside_campus(evaluation)

        record = self.ledger_service.proxy_check_in(
            db, subject_user_id,
            proxy_user_id=current_user["user_id"],
            point=point,
            accuracy=accuracy,
            reason=reason,
            at=now or utcnow()
        )
        logger.info(
            "Proxy attendance recorded",
            extra={'extra_data': {
                "user_id": subject_user_id,
                "proxy_user_id": current_user["user_id"],
                "role": role.value
            }}
        )
        self._notify_check_in(record, "proxy")
        return record

    def _flag_session(
        self,
        db: Session,
        user_id: int,
        token_id: str,
        flag_type: str,
        description: str,
        now: datetime,
        severity: Optional[str] = None,
        face_score: Optional[float] = None,
        point: Optional[GeoPoint] = None,
        accuracy: Optional[float] = None,
        device_info: Optional[str] = None
    ) -> VerificationSession:
        """Persist a suspicious session carrying one flag and one attempt"""
        flag = {"type": flag_type, "description": description, "timestamp": now.isoformat()}
        if severity:
            flag["severity"] = severity

        def work() -> VerificationSession:
            session = self.session_repo.add_session(db, {
                "vs_session_id": f"sess_{uuid.uuid4().hex}",
                "vs_token_id": token_id,
                "vs_user_id": user_id,
                "vs_status": "suspicious",
                "vs_face_score": face_score,
                "vs_face_verified": False,
                "vs_location_verified": point is not None,
                "vs_device_fingerprint": device_info,
                "vs_security_flags": [flag],
                "vs_started_at": now,
                "vs_ended_at": now
            })
            self._stage_attempt(db, session, user_id, now, face_score, point, accuracy, device_info)
            return session

        session = atomic(db, work)

        logger.warning(
            "Verification session flagged",
            extra={'extra_data': {
                "user_id": user_id,
                "token_id": token_id,
                "session_id": session.vs_session_id,
                "flag": flag_type,
                "severity": severity
            }}
        )
        return session

    def _stage_attempt(
        self,
        db: Session,
        session: VerificationSession,
        user_id: int,
        now: datetime,
        face_score: Optional[float],
        point: Optional[GeoPoint],
        accuracy: Optional[float],
        device_info: Optional[str]
    ) -> None:
        self.attempt_repo.add_attempt(db, {
            "va_session_id": session.vs_id,
            "va_user_id": user_id,
            "va_attempted_at": now,
            "va_face_score": face_score,
            "va_lat": point.lat if point else None,
            "va_lng": point.lng if point else None,
            "va_accuracy": accuracy,
            "va_device_info": device_info
        })

    def _stage_session(
        self,
        db: Session,
        user_id: int,
        token_id: str,
        face_score: float,
        face_verified: bool,
        device_info: Optional[str],
        now: datetime
    ) -> VerificationSession:
        """Create or update the active session for (user, token) without committing"""
        verification = {
            "vs_face_score": face_score,
            "vs_face_verified": face_verified,
            "vs_location_verified": True
        }

        session = self.session_repo.get_active(db, user_id, token_id)
        if session is None:
            return self.session_repo.add_session(db, {
                "vs_session_id": f"sess_{uuid.uuid4().hex}",
                "vs_token_id": token_id,
                "vs_user_id": user_id,
                "vs_status": "active",
                "vs_device_fingerprint": device_info,
                "vs_security_flags": [],
                "vs_started_at": now,
                **verification
            })

        return self.session_repo.apply(db, session, verification)

    def _commit_scan(
        self,
        db: Session,
        user_id: int,
        token_id: str,
        kind: str,
        point: GeoPoint,
        accuracy: Optional[float],
        face_score: float,
        face_verified: bool,
        device_info: Optional[str],
        now: datetime
    ) -> Tuple[str, AttendanceRecord]:
        """
        Spend the token use and write session, attempt and ledger as one unit

        The guarded increment runs first; when it loses, nothing of the
        scan is persisted.
        """
        def work() -> Tuple[str, AttendanceRecord]:
            self.token_service.reserve(db, token_id, now)

            session = self._stage_session(db, user_id, token_id, face_score, face_verified, device_info, now)
            self._stage_attempt(db, session, user_id, now, face_score, point, accuracy, device_info)

            if kind == "checkout":
                record = self.ledger_service.stage_check_out(
                    db, user_id, point,
                    inside=True,
                    accuracy=accuracy,
                    at=now,
                    method=SCAN_METHOD,
                    face_score=face_score,
                    session_id=session.vs_session_id
                )
                self.session_repo.apply(db, session, {"vs_status": "completed", "vs_ended_at": now})
            else:
                record = self.ledger_service.stage_check_in(
                    db, user_id, point,
                    accuracy=accuracy,
                    at=now,
                    method=SCAN_METHOD,
                    face_score=face_score,
                    session_id=session.vs_session_id
                )
            return session.vs_session_id, record

        session_id, record = atomic(db, work)
        db.refresh(record)
        return session_id, record

    def scan(
        self,
        db: Session,
        user_id: int,
        payload: Optional[str],
        face_image: Optional[str],
        location: Any,
        device_info: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> ScanOutcome:
        """
        Token-scan attendance: token, location, face and fraud gates, then
        token use, session and ledger write committed together

        Raises:
            VerificationError: MISSING_INPUT, TOKEN_*, LOCATION_REQUIRED,
                INVALID_LOCATION, OUTSIDE_CAMPUS, FACE_VERIFICATION_FAILED,
                SECURITY_ALERT
        """
        now = now or utcnow()

        if not payload or not face_image:
            raise VerificationError(ErrorCode.MISSING_INPUT, "QR data and face image required")

        token_id = self.token_service.resolve(payload)
        token = self.token_service.validate(db, token_id, now)
        kind = token.st_kind

        point, accuracy, evaluation = self._locate(location)
        if not evaluation.inside:
            raise self._outside_campus(evaluation)

        policy = self.face_service.get_policy(db, user_id)
        if policy["require_face_verification"]:
            verification = self.face_service.verify(db, user_id, face_image, settings.FACE_SCAN_THRESHOLD)
            if not verification.verified:
                self._flag_session(
                    db, user_id, token_id,
                    flag_type="face_mismatch",
                    description=f"Face verification failed with score {verification.score:.2f}",
                    now=now,
                    face_score=verification.score,
                    point=point,
                    accuracy=accuracy,
                    device_info=device_info
                )
                raise VerificationError(
                    ErrorCode.FACE_VERIFICATION_FAILED,
                    "Face verification failed",
                    details={
                        "score": verification.score,
                        "requiresRegistration": verification.reason == ErrorCode.NO_FACE_REGISTERED.value
                    }
                )
            face_score, face_verified = verification.score, True
        else:
            face_score, face_verified = 1.0, True

        fraud = self.fraud_service.check(db, user_id, now)
        if fraud.suspicious:
            self._flag_session(
                db, user_id, token_id,
                flag_type="suspicious_activity",
                description=fraud.reason,
                now=now,
                severity=fraud.severity,
                face_score=face_score,
                point=point,
                accuracy=accuracy,
                device_info=device_info
            )
            raise VerificationError(
                ErrorCode.SECURITY_ALERT,
                "Security alert: manual verification required",
                details={
                    "reason": fraud.reason,
                    "severity": fraud.severity,
                    "requiresManualVerification": True
                }
            )

        session_id, record = self._commit_scan(
            db, user_id, token_id, kind, point, accuracy,
            face_score, face_verified, device_info, now
        )

        if kind == "checkout":
            self._notify_check_out(record, True)
            message = "Check-out successful"
        else:
            self._notify_check_in(record, SCAN_METHOD)
            message = "Attendance marked successfully"

        logger.info(
            "Scan attendance completed",
            extra={'extra_data': {
                "user_id": user_id,
                "token_id": token_id,
                "kind": kind,
                "session_id": session_id,
                "face_score": face_score
            }}
        )
        return ScanOutcome(
            record=record,
            face_verified=face_verified,
            face_score=face_score,
            session_id=session_id,
            message=message
        )
