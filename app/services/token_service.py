"""
Token Service - Scan token lifecycle: issue, resolve, validate, consume
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError
from app.core.timeutils import utcnow
from app.models.scan_token import ScanToken
from app.repositories.scan_token_repository import ScanTokenRepository
from app.services.jwt_service import JwtService
from atams.exceptions import BadRequestException
from atams.logging import get_logger
from atams.transaction import transaction

logger = get_logger(__name__)

TOKEN_KINDS = ("attendance", "checkin", "checkout")


@dataclass
class IssuedToken:
    token: ScanToken
    payload: str
    expires_in: int


class TokenService:
    def __init__(self) -> None:
        self.repo = ScanTokenRepository()
        self.jwt_service = JwtService()

    def issue(
        self,
        db: Session,
        kind: str = "attendance",
        location: Optional[Dict[str, Any]] = None,
        max_usage: Optional[int] = None,
        issued_by: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> IssuedToken:
        """Create a fresh active token and its signed QR payload"""
        if kind not in TOKEN_KINDS:
            raise BadRequestException(
                f"Unsupported token kind: {kind}",
                details={"allowed": list(TOKEN_KINDS)}
            )
        if max_usage is None:
            max_usage = settings.QR_DEFAULT_MAX_USAGE
        elif max_usage <= 0:
            raise BadRequestException(
                "max_usage must be a positive number",
                details={"max_usage": max_usage}
            )

        now = now or utcnow()
        ttl = settings.QR_TOKEN_TTL_SECONDS
        expires_at = now + timedelta(seconds=ttl)

        token = self.repo.create(db, {
            "st_id": str(uuid.uuid4()),
            "st_kind": kind,
            "st_location": location,
            "st_active": True,
            "st_expires_at": expires_at,
            "st_usage_count": 0,
            "st_max_usage": max_usage,
            "st_issued_by": issued_by
        })

        payload = self.jwt_service.sign_scan_payload(token.st_id, kind, location, now, expires_at)

        logger.info(
            "Scan token issued",
            extra={'extra_data': {
                "token_id": token.st_id,
                "kind": kind,
                "max_usage": token.st_max_usage,
                "issued_by": issued_by
            }}
        )
        return IssuedToken(token=token, payload=payload, expires_in=ttl)

    def resolve(self, payload: str) -> str:
        """Verify a scanned payload and return the token id it carries"""
        return self.jwt_service.verify_scan_payload(payload)["id"]

    @staticmethod
    def _classify(token: Optional[ScanToken], now: datetime) -> Optional[VerificationError]:
        if token is None or not token.st_active:
            return VerificationError(ErrorCode.TOKEN_NOT_FOUND, "Invalid or inactive QR code")
        if token.st_expires_at <= now:
            return VerificationError(ErrorCode.TOKEN_EXPIRED, "QR code has expired")
        if token.st_usage_count >= token.st_max_usage:
            return VerificationError(ErrorCode.TOKEN_EXHAUSTED, "QR code usage limit exceeded")
        return None

    def validate(self, db: Session, token_id: str, now: Optional[datetime] = None) -> ScanToken:
        """Read-only lifecycle check; raises the same errors as consume"""
        token = self.repo.get(db, token_id)
        error = self._classify(token, now or utcnow())
        if error:
            raise error
        return token

    def reserve(self, db: Session, token_id: str, now: Optional[datetime] = None) -> None:
        """
        Stage one use of a token inside the caller's transaction

        The guarded increment decides; the error is classified only after it
        affected no row.

        Raises:
            VerificationError: TOKEN_NOT_FOUND, TOKEN_EXPIRED or TOKEN_EXHAUSTED
        """
        now = now or utcnow()
        if self.repo.increment_usage(db, token_id, now):
            logger.info("Scan token use staged", extra={'extra_data': {"token_id": token_id}})
            return

        error = self._classify(self.repo.get(db, token_id), now)
        if error is None:
            error = VerificationError(ErrorCode.TOKEN_EXHAUSTED, "QR code usage limit exceeded")

        logger.warning(
            "Scan token rejected",
            extra={'extra_data': {"token_id": token_id, "code": error.code.value}}
        )
        raise error

    def consume(self, db: Session, token_id: str, now: Optional[datetime] = None) -> None:
        """Spend one use of a token in its own transaction"""
        with transaction(db):
            self.reserve(db, token_id, now)

    def list_active(self, db: Session, issued_by: int, now: Optional[datetime] = None) -> List[ScanToken]:
        return self.repo.get_active_by_issuer(db, issued_by, now or utcnow())
