"""
Verification Session Repository - Data access layer for scan sessions and attempts
"""
from typing import Any, Dict, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import and_, func, select, update

from atams.db import BaseRepository
from app.models.scan_token import ScanToken
from app.models.verification_session import VerificationSession, VerificationAttempt


class VerificationSessionRepository(BaseRepository[VerificationSession]):
    def __init__(self):
        super().__init__(VerificationSession)

    def get_active(self, db: Session, user_id: int, token_id: str) -> Optional[VerificationSession]:
        """Get the active session for a (user, token) pair using ORM"""
        return db.query(VerificationSession).filter(
            and_(
                VerificationSession.vs_user_id == user_id,
                VerificationSession.vs_token_id == token_id,
                VerificationSession.vs_status == "active"
            )
        ).order_by(VerificationSession.vs_started_at.desc()).first()

    def add_session(self, db: Session, session_data: Dict[str, Any]) -> VerificationSession:
        """Stage a new session and assign its id (caller commits)"""
        db_session = VerificationSession(**session_data)
        db.add(db_session)
        db.flush()
        return db_session

    def apply(self, db: Session, session: VerificationSession, changes: Dict[str, Any]) -> VerificationSession:
        """Stage field changes on a loaded session (caller commits)"""
        for field, value in changes.items():
            setattr(session, field, value)
        db.flush()
        return session

    def count_active_since(self, db: Session, user_id: int, since: datetime) -> int:
        """Count user's active sessions started after a moment using ORM"""
        return db.query(func.count(VerificationSession.vs_id)).filter(
            and_(
                VerificationSession.vs_user_id == user_id,
                VerificationSession.vs_status == "active",
                VerificationSession.vs_started_at >= since
            )
        ).scalar() or 0

    def expire_stale_sessions(self, db: Session, now: datetime) -> int:
        """
        Close active sessions whose token has expired.
        Returns count of closed sessions.
        """
        expired_tokens = select(ScanToken.st_id).where(ScanToken.st_expires_at <= now)
        stmt = (
            update(VerificationSession)
            .where(
                and_(
                    VerificationSession.vs_status == "active",
                    VerificationSession.vs_token_id.in_(expired_tokens)
                )
            )
            .values(vs_status="expired", vs_ended_at=now)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        db.commit()

        return result.rowcount or 0


class VerificationAttemptRepository(BaseRepository[VerificationAttempt]):
    def __init__(self):
        super().__init__(VerificationAttempt)

    def add_attempt(self, db: Session, attempt_data: Dict[str, Any]) -> VerificationAttempt:
        """Stage an attempt row (caller commits)"""
        db_attempt = VerificationAttempt(**attempt_data)
        db.add(db_attempt)
        return db_attempt

    def count_since(self, db: Session, user_id: int, since: datetime) -> int:
        """Count user's attempts (any outcome) after a moment using ORM"""
        return db.query(func.count(VerificationAttempt.va_id)).filter(
            and_(
                VerificationAttempt.va_user_id == user_id,
                VerificationAttempt.va_attempted_at >= since
            )
        ).scalar() or 0
