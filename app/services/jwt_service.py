"""
JWT Service for QR scan payload signing and verification
"""
import jwt
from datetime import datetime
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError

ISSUER = "smartpresence-attendance"


class JwtService:
    def __init__(self) -> None:
        self.secret = settings.QR_JWT_SECRET
        self.algorithm = settings.QR_JWT_ALG

    def sign_scan_payload(
        self,
        token_id: str,
        kind: str,
        location: Optional[Dict[str, Any]],
        issued_at: datetime,
        expires_at: datetime
    ) -> str:
        """
        Sign the payload rendered into a QR image

        Args:
            token_id: Scan token primary key
            kind: Token kind (attendance/checkin/checkout)
            location: Optional display location of the QR
            issued_at: Naive UTC issue time
            expires_at: Naive UTC expiry, mirrored in the ``exp`` claim

        Returns:
            str: Encoded JWT
        """
        payload = {
            "iss": ISSUER,
            "id": token_id,
            "kind": kind,
            "location": location,
            "iat": issued_at,
            "exp": expires_at
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_scan_payload(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a scanned QR payload

        Args:
            token: JWT string from QR code

        Returns:
            dict: Decoded payload

        Raises:
            VerificationError: TOKEN_EXPIRED if the signature expired,
                TOKEN_NOT_FOUND if the payload is malformed or forged
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                issuer=ISSUER,
                options={"require": ["exp", "iss"]}
            )
        except jwt.ExpiredSignatureError:
            raise VerificationError(ErrorCode.TOKEN_EXPIRED, "QR code has expired")
        except jwt.InvalidTokenError as e:
            raise VerificationError(ErrorCode.TOKEN_NOT_FOUND, f"Invalid QR code: {str(e)}")

        if not payload.get("id"):
            raise VerificationError(ErrorCode.TOKEN_NOT_FOUND, "Invalid QR code: missing token id")

        return payload
