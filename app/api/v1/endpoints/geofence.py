"""
Geofence Endpoints - Read, update and test the campus boundary
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.geofence_service import geofence_service, parse_location
from app.schemas import (
    Geofence,
    GeofenceTestRequest,
    GeofenceTestResponse,
    GeofenceUpdate,
    DataResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from app.core.security import ADMIN_MIN_LEVEL
from atams.encryption import encrypt_response_data

router = APIRouter()


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_geofence(
    current_user: dict = Depends(require_auth)
):
    """Current authorized area"""
    response = DataResponse(
        success=True,
        message="Geofence retrieved successfully",
        data=Geofence(**geofence_service.get_geofence().to_dict())
    )

    return encrypt_response_data(response, settings)


@router.post(
    "",
    response_model=DataResponse[Geofence],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(ADMIN_MIN_LEVEL))]
)
async def update_geofence(
    request: GeofenceUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Replace the authorized area

    **Authorization:**
    - Requires role level >= 50 (Admin or above)

    **Validation:**
    - center: latitude in [-90, 90], longitude in [-180, 180]
    - radiusMeters: greater than 0
    """
    config = geofence_service.update(
        db,
        center=request.center,
        radius_meters=request.radius_meters,
        updated_by=current_user["user_id"],
        note=request.note
    )

    return DataResponse(
        success=True,
        message="Geofence updated successfully",
        data=Geofence(**config.to_dict())
    )


@router.post(
    "/test",
    response_model=DataResponse[GeofenceTestResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def test_geofence(
    request: GeofenceTestRequest,
    current_user: dict = Depends(require_auth)
):
    """Check a location against the current geofence without recording anything"""
    point, _ = parse_location(request.location)
    evaluation = geofence_service.evaluate(point)

    return DataResponse(
        success=True,
        message="Inside campus" if evaluation.inside else "Outside campus",
        data=GeofenceTestResponse(
            inside=evaluation.inside,
            distance=round(evaluation.distance, 2),
            geofence=Geofence(**geofence_service.get_geofence().to_dict())
        )
    )
