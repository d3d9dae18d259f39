from .geofence_repository import GeofenceRepository
from .scan_token_repository import ScanTokenRepository
from .verification_session_repository import VerificationSessionRepository, VerificationAttemptRepository
from .attendance_record_repository import AttendanceRecordRepository
from .attendance_event_repository import AttendanceEventRepository
from .face_profile_repository import FaceProfileRepository
from .security_policy_repository import SecurityPolicyRepository

__all__ = [
    "GeofenceRepository",
    "ScanTokenRepository",
    "VerificationSessionRepository",
    "VerificationAttemptRepository",
    "AttendanceRecordRepository",
    "AttendanceEventRepository",
    "FaceProfileRepository",
    "SecurityPolicyRepository"
]
