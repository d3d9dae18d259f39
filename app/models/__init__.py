from .geofence import Geofence
from .scan_token import ScanToken
from .verification_session import VerificationSession, VerificationAttempt
from .attendance_record import AttendanceRecord
from .attendance_event import AttendanceEvent
from .face_profile import FaceProfile
from .security_policy import SecurityPolicy

__all__ = [
    "Geofence",
    "ScanToken",
    "VerificationSession",
    "VerificationAttempt",
    "AttendanceRecord",
    "AttendanceEvent",
    "FaceProfile",
    "SecurityPolicy"
]
