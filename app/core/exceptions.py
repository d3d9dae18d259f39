"""
Verification error taxonomy

Every rejection raised by the verification pipeline carries one of the
ErrorCode values so that clients can react to the reason, not the message.
"""
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from atams.exceptions import AppException
from atams.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(str, Enum):
    LOCATION_REQUIRED = "LOCATION_REQUIRED"
    INVALID_LOCATION = "INVALID_LOCATION"
    OUTSIDE_CAMPUS = "OUTSIDE_CAMPUS"
    MISSING_INPUT = "MISSING_INPUT"
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_EXHAUSTED = "TOKEN_EXHAUSTED"
    NO_FACE_REGISTERED = "NO_FACE_REGISTERED"
    FACE_VERIFICATION_FAILED = "FACE_VERIFICATION_FAILED"
    SECURITY_ALERT = "SECURITY_ALERT"
    PROXY_NOT_ALLOWED = "PROXY_NOT_ALLOWED"
    UNAUTHORIZED_PROXY = "UNAUTHORIZED_PROXY"
    STORAGE_ERROR = "STORAGE_ERROR"


ERROR_STATUS = {
    ErrorCode.LOCATION_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_LOCATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.OUTSIDE_CAMPUS: status.HTTP_403_FORBIDDEN,
    ErrorCode.MISSING_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TOKEN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TOKEN_EXPIRED: status.HTTP_410_GONE,
    ErrorCode.TOKEN_EXHAUSTED: status.HTTP_409_CONFLICT,
    ErrorCode.NO_FACE_REGISTERED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FACE_VERIFICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.SECURITY_ALERT: status.HTTP_403_FORBIDDEN,
    ErrorCode.PROXY_NOT_ALLOWED: status.HTTP_403_FORBIDDEN,
    ErrorCode.UNAUTHORIZED_PROXY: status.HTTP_403_FORBIDDEN,
    ErrorCode.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class VerificationError(AppException):
    """Typed rejection from the attendance verification pipeline"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        super().__init__(message, ERROR_STATUS[code], details)


async def verification_exception_handler(request: Request, exc: VerificationError):
    """Coded pipeline errors carry their code next to the message"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "error": {"message": exc.message, "code": exc.code.value},
            "details": exc.details
        }
    )


async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    """Any database failure surfaces as a generic STORAGE_ERROR"""
    logger.error(
        "Database error",
        extra={'extra_data': {"path": request.url.path, "error": str(exc)}}
    )
    message = "A storage error occurred, please try again"
    return JSONResponse(
        status_code=ERROR_STATUS[ErrorCode.STORAGE_ERROR],
        content={
            "success": False,
            "message": message,
            "error": {"message": message, "code": ErrorCode.STORAGE_ERROR.value},
            "details": {}
        }
    )


def setup_verification_handlers(app: FastAPI) -> None:
    """Register after atams.exceptions.setup_exception_handlers so these take precedence"""
    app.add_exception_handler(VerificationError, verification_exception_handler)
    app.add_exception_handler(IntegrityError, storage_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
