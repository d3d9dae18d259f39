"""
Security Policy Repository - Data access layer for per-user verification settings
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from atams.db import BaseRepository
from app.models.security_policy import SecurityPolicy


class SecurityPolicyRepository(BaseRepository[SecurityPolicy]):
    def __init__(self):
        super().__init__(SecurityPolicy)

    def save_policy(self, db: Session, user_id: int, policy_data: dict) -> SecurityPolicy:
        """Update the user's policy, creating it on first write"""
        existing = self.get(db, user_id)
        if existing:
            return self.update(db, existing, policy_data)

        try:
            return self.create(db, {"sp_user_id": user_id, **policy_data})
        except IntegrityError:
            db.rollback()
            return self.update(db, self.get(db, user_id), policy_data)
