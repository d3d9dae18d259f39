from atams import AtamsBaseSettings


class Settings(AtamsBaseSettings):
    """
    Application Settings

    Inherits from AtamsBaseSettings which includes:
    - DATABASE_URL (required)
    - ATLAS_SSO_URL, ATLAS_APP_CODE, ATLAS_ENCRYPTION_KEY, ATLAS_ENCRYPTION_IV
    - ENCRYPTION_ENABLED, ENCRYPTION_KEY, ENCRYPTION_IV (response encryption)
    - LOGGING_ENABLED, LOG_LEVEL, LOG_TO_FILE, LOG_FILE_PATH
    - CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS, CORS_ALLOW_HEADERS
    - RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
    - DEBUG

    All settings can be overridden via .env file or by redefining them here.
    """
    APP_NAME: str = "SmartPresence Attendance"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # QR scan token settings
    QR_JWT_SECRET: str = "change_me_qr_secret"
    QR_JWT_ALG: str = "HS256"
    QR_TOKEN_TTL_SECONDS: int = 60
    QR_DEFAULT_MAX_USAGE: int = 100

    # Geofence seed used until an admin persists one
    DEFAULT_GEOFENCE_LAT: float = 15.797113
    DEFAULT_GEOFENCE_LNG: float = 78.077443
    DEFAULT_GEOFENCE_RADIUS_M: float = 1000.0

    # Face matching thresholds
    FACE_MATCH_THRESHOLD: float = 0.6
    FACE_SCAN_THRESHOLD: float = 0.7

    # Fraud detection windows
    FRAUD_ACTIVE_SESSION_WINDOW_MINUTES: int = 30
    FRAUD_MAX_ACTIVE_SESSIONS: int = 1
    FRAUD_ATTEMPT_WINDOW_MINUTES: int = 5
    FRAUD_MAX_ATTEMPTS: int = 3

    # Notification stream
    NOTIFICATION_QUEUE_SIZE: int = 50


settings = Settings()
