"""
Face Endpoints - Registration, verification and security settings
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.face_service import FaceService
from app.schemas import (
    FaceImageRequest,
    FaceProfile,
    FaceStatus,
    FaceVerificationResult,
    FaceVerifyRequest,
    SecuritySettings,
    SecuritySettingsUpdate,
    ProxyPreferenceUpdate,
    DataResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError
from app.core.security import ADMIN_MIN_LEVEL
from atams.encryption import encrypt_response_data

router = APIRouter()
face_service = FaceService()


@router.post(
    "/register",
    response_model=DataResponse[FaceProfile],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_min_role_level(1))]
)
async def register_face(
    request: FaceImageRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Register (or replace) the current user's face"""
    profile = face_service.register(db, current_user["user_id"], request.image)

    return DataResponse(
        success=True,
        message="Face registered successfully",
        data=FaceProfile.model_validate(profile)
    )


@router.get(
    "/status",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_face_status(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Face registration status and security settings of the current user"""
    face_status = face_service.get_status(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Face status retrieved successfully",
        data=FaceStatus(**face_status)
    )

    return encrypt_response_data(response, settings)


@router.post(
    "/verify",
    response_model=DataResponse[FaceVerificationResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def verify_face(
    request: FaceVerifyRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Ad-hoc face check against the registered face

    **Errors:**
    - 400: NO_FACE_REGISTERED
    """
    result = face_service.verify(db, current_user["user_id"], request.image, request.threshold)
    if result.reason == ErrorCode.NO_FACE_REGISTERED.value:
        raise VerificationError(
            ErrorCode.NO_FACE_REGISTERED,
            "No registered face data found",
            details={"requiresRegistration": True}
        )

    return DataResponse(
        success=True,
        message=result.reason,
        data=FaceVerificationResult(
            verified=result.verified,
            score=result.score,
            confidence=result.confidence,
            reason=result.reason
        )
    )


@router.put(
    "/security-settings",
    response_model=DataResponse[SecuritySettings],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def update_security_settings(
    request: ProxyPreferenceUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Opt in or out of proxy attendance

    Face verification requirements are managed by admins.
    """
    policy = face_service.update_policy(db, current_user["user_id"], request.model_dump())

    return DataResponse(
        success=True,
        message="Security settings updated successfully",
        data=SecuritySettings(**policy)
    )


@router.put(
    "/admin/{user_id}/security-settings",
    response_model=DataResponse[SecuritySettings],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(ADMIN_MIN_LEVEL))]
)
async def update_user_security_settings(
    user_id: int,
    request: SecuritySettingsUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Update a user's verification policy; omitted fields are kept

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    policy = face_service.update_policy(db, user_id, request.model_dump(exclude_unset=True))

    return DataResponse(
        success=True,
        message="Security settings updated successfully",
        data=SecuritySettings(**policy)
    )


@router.get(
    "/admin/students",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(ADMIN_MIN_LEVEL))]
)
async def list_face_status(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Face registration status of every registered user

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    statuses = face_service.list_status(db, skip=skip, limit=limit)

    response = DataResponse(
        success=True,
        message="Face registration status retrieved successfully",
        data=[FaceStatus(**s) for s in statuses]
    )

    return encrypt_response_data(response, settings)


@router.delete(
    "/admin/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_min_role_level(ADMIN_MIN_LEVEL))]
)
async def delete_face(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Delete a user's face data

    **Authorization:**
    - Requires role level >= 50 (Admin or above)
    """
    face_service.delete(db, user_id)

    # 204 returns no content
    return None
