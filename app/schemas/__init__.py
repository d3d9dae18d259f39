from .geofence import GeoPoint, LocationIn, Geofence, GeofenceUpdate, GeofenceTestRequest, GeofenceTestResponse
from .attendance import (
    AttendanceRecord,
    AttendanceEvent,
    CheckInRequest,
    CheckOutRequest,
    ProxyCheckInRequest,
    AttendanceSummary
)
from .token import (
    TokenLocation,
    TokenGenerateRequest,
    ScanToken,
    IssuedTokenResponse,
    ScanRequest,
    VerificationSummary,
    ScanResult
)
from .face import (
    FaceImageRequest,
    FaceVerifyRequest,
    FaceProfile,
    SecuritySettings,
    SecuritySettingsUpdate,
    ProxyPreferenceUpdate,
    FaceStatus,
    FaceVerificationResult
)
from .common import DataResponse, PaginationResponse

__all__ = [
    # Geofence schemas
    "GeoPoint",
    "LocationIn",
    "Geofence",
    "GeofenceUpdate",
    "GeofenceTestRequest",
    "GeofenceTestResponse",
    # Attendance schemas
    "AttendanceRecord",
    "AttendanceEvent",
    "CheckInRequest",
    "CheckOutRequest",
    "ProxyCheckInRequest",
    "AttendanceSummary",
    # Token schemas
    "TokenLocation",
    "TokenGenerateRequest",
    "ScanToken",
    "IssuedTokenResponse",
    "ScanRequest",
    "VerificationSummary",
    "ScanResult",
    # Face schemas
    "FaceImageRequest",
    "FaceVerifyRequest",
    "FaceProfile",
    "SecuritySettings",
    "SecuritySettingsUpdate",
    "ProxyPreferenceUpdate",
    "FaceStatus",
    "FaceVerificationResult",
    # Common schemas
    "DataResponse",
    "PaginationResponse"
]
