"""
Scan Token Repository - Data access layer for QR scan tokens
"""
from typing import List
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import and_, update

from atams.db import BaseRepository
from app.models.scan_token import ScanToken


class ScanTokenRepository(BaseRepository[ScanToken]):
    def __init__(self):
        super().__init__(ScanToken)

    def increment_usage(self, db: Session, token_id: str, now: datetime) -> bool:
        """
        Stage one use of a token with a single guarded UPDATE (caller commits).

        Returns True if the row was updated, False if the token is unknown,
        inactive, expired or exhausted. Concurrent callers can never push
        usage past the limit because the guard and increment are one statement.
        """
        stmt = (
            update(ScanToken)
            .where(
                and_(
                    ScanToken.st_id == token_id,
                    ScanToken.st_active.is_(True),
                    ScanToken.st_expires_at > now,
                    ScanToken.st_usage_count < ScanToken.st_max_usage
                )
            )
            .values(st_usage_count=ScanToken.st_usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        return result.rowcount == 1

    def get_active_by_issuer(self, db: Session, issued_by: int, now: datetime) -> List[ScanToken]:
        """Get issuer's usable tokens, newest first, using ORM"""
        return db.query(ScanToken).filter(
            and_(
                ScanToken.st_issued_by == issued_by,
                ScanToken.st_active.is_(True),
                ScanToken.st_expires_at > now
            )
        ).order_by(ScanToken.st_expires_at.desc()).all()
