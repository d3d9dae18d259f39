"""
Geofence Model - Persisted campus boundary
"""
from sqlalchemy import Column, BigInteger, Integer, Float, String, DateTime
from sqlalchemy.sql import func
from atams.db import Base


class Geofence(Base):
    """Geofence model - Table: geofences (newest row is authoritative)"""
    __tablename__ = "geofences"

    gf_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    gf_center_lat = Column(Float, nullable=False)
    gf_center_lng = Column(Float, nullable=False)
    gf_radius_m = Column(Float, nullable=False)
    gf_revision = Column(Integer, nullable=False, default=1)
    gf_updated_by = Column(BigInteger, nullable=True)  # References the acting admin
    gf_note = Column(String(255), nullable=True)
    gf_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    gf_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
