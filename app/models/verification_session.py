"""
Verification Session Model - Token-scan attempt sequences used for fraud correlation
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, Boolean, Float, JSON, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from atams.db import Base


class VerificationSession(Base):
    """Verification session model - Table: verification_sessions"""
    __tablename__ = "verification_sessions"

    vs_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    vs_session_id = Column(String(64), nullable=False, unique=True)
    vs_token_id = Column(String(64), ForeignKey("scan_tokens.st_id"), nullable=False, index=True)
    vs_user_id = Column(BigInteger, nullable=False, index=True)
    vs_status = Column(String(20), nullable=False, default="active", index=True)  # active/completed/expired/suspicious
    vs_face_score = Column(Float, nullable=True)
    vs_face_verified = Column(Boolean, nullable=False, default=False)
    vs_location_verified = Column(Boolean, nullable=False, default=False)
    vs_device_fingerprint = Column(String(255), nullable=True)
    vs_security_flags = Column(JSON, nullable=False, default=list)  # [{"type", "description", "severity", "timestamp"}]
    vs_started_at = Column(DateTime, nullable=False, index=True)
    vs_ended_at = Column(DateTime, nullable=True)
    vs_created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    vs_updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    attempts = relationship(
        "VerificationAttempt",
        back_populates="session",
        order_by="VerificationAttempt.va_attempted_at",
        cascade="all, delete-orphan"
    )


class VerificationAttempt(Base):
    """Verification attempt model - Table: verification_attempts"""
    __tablename__ = "verification_attempts"

    va_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True, autoincrement=True)
    va_session_id = Column(BigInteger, ForeignKey("verification_sessions.vs_id"), nullable=False, index=True)
    va_user_id = Column(BigInteger, nullable=False, index=True)
    va_attempted_at = Column(DateTime, nullable=False, index=True)
    va_face_score = Column(Float, nullable=True)
    va_lat = Column(Float, nullable=True)
    va_lng = Column(Float, nullable=True)
    va_accuracy = Column(Float, nullable=True)
    va_device_info = Column(String(255), nullable=True)

    session = relationship("VerificationSession", back_populates="attempts")
