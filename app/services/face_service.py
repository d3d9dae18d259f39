"""
Face Service - Placeholder face encoding, similarity scoring and per-user security settings

Encodings are content hashes, not biometric templates: the same image
always yields the same encoding, and any other image scores by chance.
"""
import base64
import binascii
import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError
from app.core.timeutils import utcnow
from app.models.face_profile import FaceProfile
from app.models.security_policy import SecurityPolicy
from app.repositories.face_profile_repository import FaceProfileRepository
from app.repositories.security_policy_repository import SecurityPolicyRepository
from atams.exceptions import NotFoundException
from atams.logging import get_logger

logger = get_logger(__name__)

DEFAULT_POLICY = {
    "require_face_verification": True,
    "allow_proxy_attendance": False,
    "max_verification_attempts": 3
}


@dataclass(frozen=True)
class FaceScore:
    value: float
    matched: bool


@dataclass(frozen=True)
class FaceVerification:
    verified: bool
    score: float
    confidence: float
    reason: str


def encode(image: Union[str, bytes]) -> str:
    """Base64 SHA-256 digest of the raw image (str input is UTF-8 encoded)"""
    raw = image.encode("utf-8") if isinstance(image, str) else bytes(image)
    return base64.b64encode(hashlib.sha256(raw).digest()).decode("ascii")


def _decode(encoding: Optional[str]) -> bytes:
    if not encoding:
        return b""
    try:
        return base64.b64decode(encoding)
    except (binascii.Error, ValueError):
        return b""


def score(stored: Optional[str], candidate: Optional[str], threshold: float) -> FaceScore:
    """Fraction of equal byte positions between two decoded encodings"""
    a, b = _decode(stored), _decode(candidate)
    length = min(len(a), len(b))
    if length == 0:
        return FaceScore(value=0.0, matched=False)

    matches = sum(1 for i in range(length) if a[i] == b[i])
    value = matches / length
    return FaceScore(value=value, matched=value >= threshold)


class FaceService:
    def __init__(self) -> None:
        self.repo = FaceProfileRepository()
        self.policy_repo = SecurityPolicyRepository()

    def verify(
        self,
        db: Session,
        user_id: int,
        image: Union[str, bytes],
        threshold: Optional[float] = None
    ) -> FaceVerification:
        """
        Score a captured image against the user's registered encoding

        Args:
            db: Database session
            user_id: Subject user
            image: Captured image
            threshold: Match threshold, defaults to FACE_MATCH_THRESHOLD

        Returns:
            FaceVerification; verified=False with score 0 when no profile exists
        """
        threshold = settings.FACE_MATCH_THRESHOLD if threshold is None else threshold
        profile = self.repo.get(db, user_id)
        if profile is None or not profile.fp_encoding:
            logger.info("Face verification without registered face", extra={'extra_data': {"user_id": user_id}})
            return FaceVerification(
                verified=False,
                score=0.0,
                confidence=0.0,
                reason=ErrorCode.NO_FACE_REGISTERED.value
            )

        result = score(profile.fp_encoding, encode(image), threshold)

        if result.matched:
            try:
                self.repo.mark_verified(db, user_id, utcnow())
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning(
                    "Failed to record face verification",
                    extra={'extra_data': {"user_id": user_id, "error": str(e)}}
                )

        logger.info(
            "Face verification completed",
            extra={'extra_data': {
                "user_id": user_id,
                "score": result.value,
                "threshold": threshold,
                "verified": result.matched
            }}
        )
        return FaceVerification(
            verified=result.matched,
            score=result.value,
            confidence=min(result.value * 100, 100),
            reason="Face verified successfully" if result.matched else "Face does not match registered data"
        )

    def register(self, db: Session, user_id: int, image: Union[str, bytes]) -> FaceProfile:
        if not image:
            raise VerificationError(ErrorCode.MISSING_INPUT, "Face image is required")

        profile = self.repo.save_encoding(db, user_id, encode(image), utcnow())
        logger.info("Face registered", extra={'extra_data': {"user_id": user_id}})
        return profile

    def get_policy(self, db: Session, user_id: int) -> Dict[str, Any]:
        """User's security settings, falling back to defaults when never saved"""
        policy = self.policy_repo.get(db, user_id)
        if policy is None:
            return dict(DEFAULT_POLICY)
        return self._policy_dict(policy)

    @staticmethod
    def _policy_dict(policy: SecurityPolicy) -> Dict[str, Any]:
        return {
            "require_face_verification": policy.sp_require_face_verification,
            "allow_proxy_attendance": policy.sp_allow_proxy_attendance,
            "max_verification_attempts": policy.sp_max_verification_attempts
        }

    def update_policy(self, db: Session, user_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        merged = {**self.get_policy(db, user_id), **{k: v for k, v in changes.items() if v is not None}}
        policy = self.policy_repo.save_policy(db, user_id, {
            "sp_require_face_verification": merged["require_face_verification"],
            "sp_allow_proxy_attendance": merged["allow_proxy_attendance"],
            "sp_max_verification_attempts": merged["max_verification_attempts"]
        })
        logger.info("Security settings updated", extra={'extra_data': {"user_id": user_id, **merged}})
        return self._policy_dict(policy)

    def get_status(self, db: Session, user_id: int) -> Dict[str, Any]:
        profile = self.repo.get(db, user_id)
        return self._status(user_id, profile, self.get_policy(db, user_id))

    @staticmethod
    def _status(user_id: int, profile: Optional[FaceProfile], policy: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "user_id": user_id,
            "face_registered": profile is not None,
            "registered_at": profile.fp_registered_at if profile else None,
            "last_verified_at": profile.fp_last_verified_at if profile else None,
            "verification_count": profile.fp_verification_count if profile else 0,
            "security_settings": policy
        }

    def list_status(self, db: Session, skip: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
        profiles = self.repo.get_all_profiles(db, skip=skip, limit=limit)
        return [self._status(p.fp_user_id, p, self.get_policy(db, p.fp_user_id)) for p in profiles]

    def delete(self, db: Session, user_id: int) -> None:
        if not self.repo.delete_by_user(db, user_id):
            raise NotFoundException("Face data not found")
        logger.info("Face data deleted", extra={'extra_data': {"user_id": user_id}})

