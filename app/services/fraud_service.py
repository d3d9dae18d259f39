"""
Fraud Service - Suspicious-activity checks over recent verification activity
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timeutils import utcnow
from app.repositories.verification_session_repository import (
    VerificationSessionRepository,
    VerificationAttemptRepository,
)
from atams.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FraudCheck:
    suspicious: bool
    reason: Optional[str] = None
    severity: Optional[str] = None


class FraudService:
    def __init__(self) -> None:
        self.session_repo = VerificationSessionRepository()
        self.attempt_repo = VerificationAttemptRepository()

    def check(self, db: Session, user_id: int, now: Optional[datetime] = None) -> FraudCheck:
        """
        Inspect a user's recent activity; read-only

        Multiple active sessions (high severity) take precedence over
        rapid scanning (medium severity).
        """
        now = now or utcnow()

        session_since = now - timedelta(minutes=settings.FRAUD_ACTIVE_SESSION_WINDOW_MINUTES)
        active_sessions = self.session_repo.count_active_since(db, user_id, session_since)
        if active_sessions > settings.FRAUD_MAX_ACTIVE_SESSIONS:
            result = FraudCheck(True, "Multiple active sessions detected", "high")
            self._log(user_id, result, active_sessions=active_sessions)
            return result

        attempt_since = now - timedelta(minutes=settings.FRAUD_ATTEMPT_WINDOW_MINUTES)
        attempts = self.attempt_repo.count_since(db, user_id, attempt_since)
        if attempts > settings.FRAUD_MAX_ATTEMPTS:
            result = FraudCheck(True, "Too many scanning attempts", "medium")
            self._log(user_id, result, attempts=attempts)
            return result

        return FraudCheck(False)

    @staticmethod
    def _log(user_id: int, result: FraudCheck, **counts) -> None:
        logger.warning(
            "Suspicious activity detected",
            extra={'extra_data': {
                "user_id": user_id,
                "reason": result.reason,
                "severity": result.severity,
                **counts
            }}
        )
