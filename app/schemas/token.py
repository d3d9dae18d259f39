"""
Scan Token Schemas for QR issuing and scanning
"""
from typing import Optional, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.attendance import AttendanceRecord
from app.schemas.geofence import LocationIn


class TokenLocation(BaseModel):
    name: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class TokenGenerateRequest(BaseModel):
    """Request schema for issuing a scan token"""
    kind: Literal["attendance", "checkin", "checkout"] = "attendance"
    location: Optional[TokenLocation] = None
    max_usage: Optional[int] = Field(default=None, gt=0)


class ScanToken(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    st_id: str
    st_kind: Literal["attendance", "checkin", "checkout"]
    st_location: Optional[TokenLocation] = None
    st_active: bool
    st_expires_at: datetime
    st_usage_count: int
    st_max_usage: int
    st_issued_by: Optional[int] = None


class IssuedTokenResponse(BaseModel):
    """Response schema for token issuing; payload is rendered into the QR image"""
    token: ScanToken
    payload: str
    expires_in: int


class ScanRequest(BaseModel):
    """Request schema for the token-scan flow"""
    payload: Optional[str] = None  # Signed QR payload
    face_image: Optional[str] = None
    location: Optional[LocationIn] = None
    device_info: Optional[str] = Field(default=None, max_length=255)


class VerificationSummary(BaseModel):
    face_verified: bool
    face_score: float
    session_id: str


class ScanResult(BaseModel):
    """Response schema for a successful scan"""
    attendance: AttendanceRecord
    verification: VerificationSummary
    message: str
