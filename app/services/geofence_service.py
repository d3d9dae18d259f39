"""
Geofence Service - Campus boundary cache and inside/outside decisions
"""
import math
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ErrorCode, VerificationError
from app.models.geofence import Geofence
from app.repositories.geofence_repository import GeofenceRepository
from atams.logging import get_logger

logger = get_logger(__name__)

EARTH_RADIUS_M = 6371000


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(frozen=True)
class GeofenceConfig:
    """Immutable snapshot of the authorized area"""
    center: GeoPoint
    radius_meters: float
    source: str = "default"
    revision: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "center": {"lat": self.center.lat, "lng": self.center.lng},
            "radius_meters": self.radius_meters,
            "source": self.source,
            "revision": self.revision
        }


@dataclass(frozen=True)
class GeofenceEvaluation:
    inside: bool
    distance: float
    radius: float


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _in_range(lat: float, lng: float) -> bool:
    return (
        math.isfinite(lat) and math.isfinite(lng)
        and -90 <= lat <= 90 and -180 <= lng <= 180
    )


def parse_location(location: Any) -> Tuple[GeoPoint, Optional[float]]:
    """
    Validate client coordinates

    Accepts a mapping or an object with ``latitude``/``longitude`` and an
    optional ``accuracy``.

    Returns:
        (point, accuracy)

    Raises:
        VerificationError: LOCATION_REQUIRED when coordinates are missing or
            non-numeric, INVALID_LOCATION when non-finite or out of range
    """
    if location is None:
        raise VerificationError(ErrorCode.LOCATION_REQUIRED, "Location is required for attendance")

    if isinstance(location, dict):
        raw_lat, raw_lng = location.get("latitude"), location.get("longitude")
        raw_accuracy = location.get("accuracy")
    else:
        raw_lat, raw_lng = getattr(location, "latitude", None), getattr(location, "longitude", None)
        raw_accuracy = getattr(location, "accuracy", None)

    lat, lng = _to_float(raw_lat), _to_float(raw_lng)
    if lat is None or lng is None:
        raise VerificationError(ErrorCode.LOCATION_REQUIRED, "Location is required for attendance")

    if not _in_range(lat, lng):
        raise VerificationError(
            ErrorCode.INVALID_LOCATION,
            "Invalid location coordinates",
            details={"latitude": str(raw_lat), "longitude": str(raw_lng)}
        )

    return GeoPoint(lat=lat, lng=lng), _to_float(raw_accuracy)


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters between two points (haversine)"""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def default_geofence() -> GeofenceConfig:
    return GeofenceConfig(
        center=GeoPoint(lat=settings.DEFAULT_GEOFENCE_LAT, lng=settings.DEFAULT_GEOFENCE_LNG),
        radius_meters=settings.DEFAULT_GEOFENCE_RADIUS_M,
        source="default",
        revision=0
    )


class GeofenceService:
    def __init__(self, initial: Optional[GeofenceConfig] = None) -> None:
        self.repo = GeofenceRepository()
        self._config = initial or default_geofence()
        self._lock = threading.Lock()

    def get_geofence(self) -> GeofenceConfig:
        return self._config

    def _publish(self, config: GeofenceConfig) -> GeofenceConfig:
        with self._lock:
            self._config = config
        return config

    @staticmethod
    def _from_row(row: Geofence) -> GeofenceConfig:
        return GeofenceConfig(
            center=GeoPoint(lat=row.gf_center_lat, lng=row.gf_center_lng),
            radius_meters=row.gf_radius_m,
            source="persisted",
            revision=row.gf_revision
        )

    def reload(self, db: Session) -> GeofenceConfig:
        """Refresh the snapshot from the newest persisted row, keeping the current one if none exists"""
        row = self.repo.get_latest(db)
        if row is None:
            logger.info("No persisted geofence, using default", extra={'extra_data': self._config.to_dict()})
            return self._config

        config = self._publish(self._from_row(row))
        logger.info("Geofence loaded from database", extra={'extra_data': config.to_dict()})
        return config

    def update(
        self,
        db: Session,
        center: Any,
        radius_meters: float,
        updated_by: Optional[int] = None,
        note: Optional[str] = None
    ) -> GeofenceConfig:
        """
        Persist a new authorized area, then swap the in-memory snapshot

        Raises:
            VerificationError: INVALID_LOCATION for a bad center or a non-positive radius
        """
        lat = _to_float(center.get("lat") if isinstance(center, dict) else getattr(center, "lat", None))
        lng = _to_float(center.get("lng") if isinstance(center, dict) else getattr(center, "lng", None))
        if lat is None or lng is None or not _in_range(lat, lng):
            raise VerificationError(ErrorCode.INVALID_LOCATION, "Invalid geofence center")

        radius = _to_float(radius_meters)
        if radius is None or not math.isfinite(radius) or radius <= 0:
            raise VerificationError(
                ErrorCode.INVALID_LOCATION,
                "Geofence radius must be a positive number of meters",
                details={"radius_meters": radius_meters}
            )

        row = self.repo.save_latest(db, {
            "gf_center_lat": lat,
            "gf_center_lng": lng,
            "gf_radius_m": radius,
            "gf_updated_by": updated_by,
            "gf_note": note
        })

        config = self._publish(self._from_row(row))
        logger.info(
            "Geofence updated",
            extra={'extra_data': {**config.to_dict(), "updated_by": updated_by}}
        )
        return config

    def evaluate(self, point: GeoPoint) -> GeofenceEvaluation:
        config = self._config
        distance = distance_meters(point, config.center)
        inside = distance <= config.radius_meters

        logger.info(
            "Geofence evaluated",
            extra={'extra_data': {
                "lat": point.lat,
                "lng": point.lng,
                "distance_m": round(distance, 2),
                "radius_m": config.radius_meters,
                "inside": inside
            }}
        )
        return GeofenceEvaluation(inside=inside, distance=distance, radius=config.radius_meters)

    def is_inside(self, point: Any) -> bool:
        """Inside/outside decision; malformed points are reported as outside, never raised"""
        if isinstance(point, GeoPoint):
            lat, lng = _to_float(point.lat), _to_float(point.lng)
            if lat is None or lng is None or not _in_range(lat, lng):
                return False
            candidate = GeoPoint(lat=lat, lng=lng)
        else:
            try:
                candidate, _ = parse_location(point)
            except VerificationError:
                return False

        return self.evaluate(candidate).inside


geofence_service = GeofenceService()
