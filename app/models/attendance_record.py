"""
Attendance Record Model - One record per user per UTC day
"""
from sqlalchemy import Column, BigInteger, Integer, String, Date, DateTime, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from atams.db import Base


class AttendanceRecord(Base):
    """Attendance record model - Table: attendance_records"""
    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("ar_user_id", "ar_date", name="uq_attendance_records_user_date"),
    )

    ar_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    ar_user_id = Column(BigInteger, nullable=False, index=True)
    ar_date = Column(Date, nullable=False, index=True)
    ar_status = Column(String(10), nullable=False, default="present")  # 'present' or 'absent'
    ar_check_in_at = Column(DateTime, nullable=True)
    ar_check_out_at = Column(DateTime, nullable=True)
    ar_is_proxy = Column(Boolean, nullable=False, default=False)
    ar_proxy_user_id = Column(BigInteger, nullable=True)
    ar_proxy_reason = Column(String(255), nullable=True)
    ar_proxy_approved = Column(Boolean, nullable=True)
    ar_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    ar_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    events = relationship(
        "AttendanceEvent",
        back_populates="record",
        order_by="AttendanceEvent.ae_occurred_at",
        cascade="all, delete-orphan"
    )
