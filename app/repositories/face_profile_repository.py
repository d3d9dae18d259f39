"""
Face Profile Repository - Data access layer for stored face encodings
"""
from typing import List
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from atams.db import BaseRepository
from app.models.face_profile import FaceProfile


class FaceProfileRepository(BaseRepository[FaceProfile]):
    def __init__(self):
        super().__init__(FaceProfile)

    def save_encoding(self, db: Session, user_id: int, encoding: str, now: datetime) -> FaceProfile:
        """Store a user's encoding, replacing any previous one and resetting counters"""
        values = {
            "fp_encoding": encoding,
            "fp_registered_at": now,
            "fp_last_verified_at": None,
            "fp_verification_count": 0
        }

        existing = self.get(db, user_id)
        if existing:
            return self.update(db, existing, values)

        try:
            return self.create(db, {"fp_user_id": user_id, **values})
        except IntegrityError:
            db.rollback()
            return self.update(db, self.get(db, user_id), values)

    def mark_verified(self, db: Session, user_id: int, now: datetime) -> None:
        """Bump verification bookkeeping with a single UPDATE"""
        stmt = (
            update(FaceProfile)
            .where(FaceProfile.fp_user_id == user_id)
            .values(
                fp_last_verified_at=now,
                fp_verification_count=FaceProfile.fp_verification_count + 1
            )
            .execution_options(synchronize_session=False)
        )
        db.execute(stmt)
        db.commit()

    def delete_by_user(self, db: Session, user_id: int) -> bool:
        """Delete a user's face profile and return success status"""
        profile = self.get(db, user_id)
        if profile:
            db.delete(profile)
            db.commit()
            return True
        return False

    def get_all_profiles(self, db: Session, skip: int = 0, limit: int = 100) -> List[FaceProfile]:
        """Get registered profiles ordered by user using ORM"""
        return db.query(FaceProfile).order_by(
            FaceProfile.fp_user_id.asc()
        ).offset(skip).limit(limit).all()
