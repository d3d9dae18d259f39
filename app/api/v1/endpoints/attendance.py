"""
Attendance Endpoints - Direct and proxy check-in/out, history and summaries
"""
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.attendance_service import AttendanceService
from app.schemas import (
    AttendanceRecord,
    AttendanceSummary,
    CheckInRequest,
    CheckOutRequest,
    ProxyCheckInRequest,
    DataResponse,
    PaginationResponse
)
from app.api.deps import require_auth, require_min_role_level
from app.core.config import settings
from app.core.security import STAFF_MIN_LEVEL
from atams.encryption import encrypt_response_data

router = APIRouter()
attendance_service = AttendanceService()


@router.post(
    "/check-in",
    response_model=DataResponse[AttendanceRecord],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def check_in(
    request: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Mark today's attendance from the current location

    **Errors:**
    - 400: LOCATION_REQUIRED / INVALID_LOCATION
    - 403: OUTSIDE_CAMPUS
    """
    record = attendance_service.check_in(db, current_user["user_id"], request.location)

    return DataResponse(
        success=True,
        message="Attendance marked successfully",
        data=AttendanceRecord.model_validate(record)
    )


@router.post(
    "/check-out",
    response_model=DataResponse[AttendanceRecord],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def check_out(
    request: CheckOutRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Record an exit for today

    Checking out from outside the geofence marks the day absent.
    """
    record = attendance_service.check_out(db, current_user["user_id"], request.location)

    message = "Check-out successful" if record.ar_status == "present" else "Checked out from outside campus, marked absent"
    return DataResponse(
        success=True,
        message=message,
        data=AttendanceRecord.model_validate(record)
    )


@router.post(
    "/proxy-check-in",
    response_model=DataResponse[AttendanceRecord],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(STAFF_MIN_LEVEL))]
)
async def proxy_check_in(
    request: ProxyCheckInRequest,
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Mark attendance on behalf of another user

    **Authorization:**
    - Faculty, HOD, Dean or Admin
    - The subject must have allowed proxy attendance
    """
    record = attendance_service.proxy_check_in(
        db, current_user, request.user_id, request.location, reason=request.reason
    )

    return DataResponse(
        success=True,
        message="Proxy attendance marked successfully",
        data=AttendanceRecord.model_validate(record)
    )


@router.get(
    "/me",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_my_attendance(
    limit: int = Query(50, ge=1, le=100, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Get current user's attendance history, newest day first"""
    records, total = attendance_service.ledger_service.list_for_user(
        db, current_user["user_id"], skip=offset, limit=limit
    )

    response = PaginationResponse(
        success=True,
        message="Attendance history retrieved successfully",
        data=[AttendanceRecord.model_validate(r) for r in records],
        total=total,
        page=offset // limit + 1,
        size=limit,
        pages=(total + limit - 1) // limit
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/me/today",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_my_attendance_today(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get current user's record for today

    **Response:**
    - Record with events if exists
    - Null data if no attendance today
    """
    record = attendance_service.ledger_service.get_today(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Today's attendance retrieved successfully",
        data=AttendanceRecord.model_validate(record) if record else None
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/summary",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(1))]
)
async def get_my_summary(
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """Present/absent totals for the current user"""
    summary = attendance_service.ledger_service.summary_for_user(db, current_user["user_id"])

    response = DataResponse(
        success=True,
        message="Attendance summary retrieved successfully",
        data=AttendanceSummary(**summary)
    )

    return encrypt_response_data(response, settings)


@router.get(
    "/date/{target_date}",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(STAFF_MIN_LEVEL))]
)
async def get_attendance_for_date(
    target_date: date,
    limit: int = Query(100, ge=1, le=1000, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    db: Session = Depends(get_db),
    current_user: dict = Depends(require_auth)
):
    """
    Get every user's record for a date (YYYY-MM-DD)

    **Authorization:**
    - Faculty or above
    """
    records = attendance_service.ledger_service.list_for_date(db, target_date, skip=offset, limit=limit)

    response = DataResponse(
        success=True,
        message="Attendance records retrieved successfully",
        data=[AttendanceRecord.model_validate(r) for r in records]
    )

    return encrypt_response_data(response, settings)
