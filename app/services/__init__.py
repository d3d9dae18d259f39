from .geofence_service import GeofenceService, geofence_service
from .jwt_service import JwtService
from .token_service import TokenService
from .face_service import FaceService
from .fraud_service import FraudService
from .ledger_service import LedgerService
from .notification_service import NotificationService, notification_service
from .attendance_service import AttendanceService
from .cleanup_service import CleanupService

__all__ = [
    "GeofenceService",
    "geofence_service",
    "JwtService",
    "TokenService",
    "FaceService",
    "FraudService",
    "LedgerService",
    "NotificationService",
    "notification_service",
    "AttendanceService",
    "CleanupService"
]
