"""
Cleanup Service - Maintenance operations for verification session hygiene
"""
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from app.core.timeutils import utcnow
from app.repositories.verification_session_repository import VerificationSessionRepository
from atams.logging import get_logger

logger = get_logger(__name__)


class CleanupService:
    def __init__(self) -> None:
        self.session_repo = VerificationSessionRepository()

    def expire_stale_sessions(self, db: Session, now: Optional[datetime] = None) -> int:
        """
        Close active verification sessions whose scan token has expired

        Args:
            db: Database session
            now: Reference time (default: current UTC time)

        Returns:
            int: Number of sessions marked expired
        """
        closed = self.session_repo.expire_stale_sessions(db, now or utcnow())
        logger.info("Expired stale verification sessions", extra={'extra_data': {"closed": closed}})
        return closed
