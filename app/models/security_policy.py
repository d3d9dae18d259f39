"""
Security Policy Model - Per-user verification settings
"""
from sqlalchemy import Column, BigInteger, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from atams.db import Base


class SecurityPolicy(Base):
    """Security policy model - Table: security_policies"""
    __tablename__ = "security_policies"

    sp_user_id = Column(BigInteger, primary_key=True, index=True, autoincrement=False)
    sp_require_face_verification = Column(Boolean, nullable=False, default=True)
    sp_allow_proxy_attendance = Column(Boolean, nullable=False, default=False)
    sp_max_verification_attempts = Column(Integer, nullable=False, default=3)
    sp_updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)
