"""
Face Profile Model - Stored face encoding per user
"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from atams.db import Base


class FaceProfile(Base):
    """Face profile model - Table: face_profiles"""
    __tablename__ = "face_profiles"

    fp_user_id = Column(BigInteger, primary_key=True, index=True, autoincrement=False)
    fp_encoding = Column(String(128), nullable=False)  # base64 SHA-256 digest of the registered image
    fp_registered_at = Column(DateTime, nullable=False)
    fp_last_verified_at = Column(DateTime, nullable=True)
    fp_verification_count = Column(Integer, nullable=False, default=0)
