"""
Attendance Event Model - Audit trail of enter/exit events on a record
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship
from atams.db import Base


class AttendanceEvent(Base):
    """Attendance event model - Table: attendance_events"""
    __tablename__ = "attendance_events"

    ae_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ae_record_id = Column(BigInteger, ForeignKey("attendance_records.ar_id"), nullable=False, index=True)
    ae_user_id = Column(BigInteger, nullable=False, index=True)
    ae_event_type = Column(String(10), nullable=False)  # 'enter' or 'exit'
    ae_method = Column(String(32), nullable=False, default="direct")  # 'direct', 'qr_face_verification', 'proxy'
    ae_lat = Column(Float, nullable=True)
    ae_lng = Column(Float, nullable=True)
    ae_accuracy = Column(Float, nullable=True)
    ae_face_score = Column(Float, nullable=True)
    ae_session_id = Column(String(64), nullable=True)  # Verification session for QR events
    ae_occurred_at = Column(DateTime, nullable=False)

    record = relationship("AttendanceRecord", back_populates="events")
