"""
QR Endpoints - Scan token issuing, listing and token-scan attendance
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.attendance_service import AttendanceService
from app.schemas import (
    AttendanceRecord,
    IssuedTokenResponse,
    ScanRequest,
    ScanResult,
    ScanToken,
    TokenGenerateRequest,
    VerificationSummary,
    DataResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from app.core.security import STAFF_MIN_LEVEL
from atams.encryption import encrypt_response_data

router = APIRouter()
attendance_service = AttendanceService()


@router.post(
    "/generate",
    response_model=DataResponse[IssuedTokenResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_min_role_level(STAFF_MIN_LEVEL))]
)
async def generate_token(
    request: TokenGenerateRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Issue a time-boxed scan token

    **Authorization:**
    - Faculty or above

    **Response:**
    - Token record and the signed payload to render as a QR image
    """
    issued = attendance_service.token_service.issue(
        db,
        kind=request.kind,
        location=request.location.model_dump() if request.location else None,
        max_usage=request.max_usage,
        issued_by=current_user["user_id"]
    )

    return DataResponse(
        success=True,
        message="QR code generated successfully",
        data=IssuedTokenResponse(
            token=ScanToken.model_validate(issued.token),
            payload=issued.payload,
            expires_in=issued.expires_in
        )
    )


@router.post(
    "/scan",
    response_model=DataResponse[ScanResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def scan_token(
    request: ScanRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Token-scan attendance with face verification

    **Process:**
    1. Verify the scanned QR payload and token lifecycle
    2. Geofence validation
    3. Face verification when the user's settings require it
    4. Suspicious-activity check
    5. Check-in or check-out depending on the token kind
    6. Consume one token use

    **Errors:**
    - 400: MISSING_INPUT, LOCATION_REQUIRED, INVALID_LOCATION
    - 401: FACE_VERIFICATION_FAILED
    - 403: OUTSIDE_CAMPUS, SECURITY_ALERT
    - 404 / 410 / 409: TOKEN_NOT_FOUND / TOKEN_EXPIRED / TOKEN_EXHAUSTED
    """
    outcome = attendance_service.scan(
        db,
        current_user["user_id"],
        request.payload,
        request.face_image,
        request.location,
        device_info=request.device_info
    )

    return DataResponse(
        success=True,
        message=outcome.message,
        data=ScanResult(
            attendance=AttendanceRecord.model_validate(outcome.record),
            verification=VerificationSummary(
                face_verified=outcome.face_verified,
                face_score=outcome.face_score,
                session_id=outcome.session_id
            ),
            message=outcome.message
        )
    )


@router.get(
    "/active",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(STAFF_MIN_LEVEL))]
)
async def list_active_tokens(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Current user's usable tokens, newest first"""
    tokens = attendance_service.token_service.list_active(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Active QR codes retrieved successfully",
        data=[ScanToken.model_validate(t) for t in tokens]
    )

    return encrypt_response_data(response, settings)
