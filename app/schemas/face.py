"""
Face Schemas for registration, verification and security settings
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class FaceImageRequest(BaseModel):
    """Captured image, usually a base64 data URL"""
    image: str = Field(min_length=1)


class FaceVerifyRequest(FaceImageRequest):
    threshold: Optional[float] = Field(default=None, ge=0, le=1)


class FaceProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fp_user_id: int
    fp_registered_at: datetime
    fp_last_verified_at: Optional[datetime] = None
    fp_verification_count: int


class SecuritySettings(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    require_face_verification: bool = True
    allow_proxy_attendance: bool = False
    max_verification_attempts: int = 3


class SecuritySettingsUpdate(BaseModel):
    """Admin-managed verification policy; omitted fields are kept"""
    require_face_verification: Optional[bool] = None
    allow_proxy_attendance: Optional[bool] = None
    max_verification_attempts: Optional[int] = Field(default=None, ge=1, le=10)


class ProxyPreferenceUpdate(BaseModel):
    """Owner-editable part of the security settings"""
    model_config = ConfigDict(extra="forbid")

    allow_proxy_attendance: bool


class FaceStatus(BaseModel):
    user_id: int
    face_registered: bool
    registered_at: Optional[datetime] = None
    last_verified_at: Optional[datetime] = None
    verification_count: int = 0
    security_settings: SecuritySettings


class FaceVerificationResult(BaseModel):
    verified: bool
    score: float
    confidence: float
    reason: Optional[str] = None
