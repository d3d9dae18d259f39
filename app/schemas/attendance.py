"""
Attendance Schemas for records and events
"""
from typing import Optional, Literal, List
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.geofence import LocationIn


class AttendanceEventBase(BaseModel):
    ae_event_type: Literal["enter", "exit"]
    ae_method: str
    ae_lat: Optional[float] = None
    ae_lng: Optional[float] = None
    ae_accuracy: Optional[float] = None
    ae_face_score: Optional[float] = None
    ae_session_id: Optional[str] = None
    ae_occurred_at: datetime


class AttendanceEvent(AttendanceEventBase):
    model_config = ConfigDict(from_attributes=True)

    ae_id: int
    ae_record_id: int
    ae_user_id: int


class AttendanceRecordBase(BaseModel):
    ar_user_id: int
    ar_date: date
    ar_status: Literal["present", "absent"]
    ar_check_in_at: Optional[datetime] = None
    ar_check_out_at: Optional[datetime] = None
    ar_is_proxy: bool = False
    ar_proxy_user_id: Optional[int] = None
    ar_proxy_reason: Optional[str] = None
    ar_proxy_approved: Optional[bool] = None


class AttendanceRecord(AttendanceRecordBase):
    model_config = ConfigDict(from_attributes=True)

    ar_id: int
    events: List[AttendanceEvent] = []


# Request/Response schemas for API endpoints
class CheckInRequest(BaseModel):
    """Request schema for direct check-in"""
    location: Optional[LocationIn] = None


class CheckOutRequest(BaseModel):
    """Request schema for direct check-out"""
    location: Optional[LocationIn] = None


class ProxyCheckInRequest(BaseModel):
    """Request schema for marking attendance on behalf of another user"""
    user_id: int
    location: Optional[LocationIn] = None
    reason: Optional[str] = Field(default=None, max_length=255)


class AttendanceSummary(BaseModel):
    """Present/absent totals for a user"""
    total_days: int
    present_days: int
    absent_days: int
    attendance_rate: float
