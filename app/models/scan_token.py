"""
Scan Token Model - Time-boxed, usage-limited QR credentials
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Boolean, JSON, CheckConstraint
from sqlalchemy.sql import func
from atams.db import Base


class ScanToken(Base):
    """Scan token model - Table: scan_tokens"""
    __tablename__ = "scan_tokens"
    __table_args__ = (
        CheckConstraint("st_usage_count <= st_max_usage", name="ck_scan_tokens_usage"),
    )

    st_id = Column(String(64), primary_key=True, index=True)  # UUID rendered into the QR payload
    st_kind = Column(String(20), nullable=False)  # 'attendance', 'checkin' or 'checkout'
    st_location = Column(JSON, nullable=True)  # {"name": "Main Gate", "lat": 15.79, "lng": 78.07}
    st_active = Column(Boolean, nullable=False, default=True)
    st_expires_at = Column(DateTime, nullable=False, index=True)
    st_usage_count = Column(Integer, nullable=False, default=0)
    st_max_usage = Column(Integer, nullable=False, default=100)
    st_issued_by = Column(BigInteger, nullable=True, index=True)
    st_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
