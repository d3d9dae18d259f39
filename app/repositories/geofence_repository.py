"""
Geofence Repository - Data access layer for the persisted campus boundary
"""
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, select, update

from atams.db import BaseRepository
from app.models.geofence import Geofence


class GeofenceRepository(BaseRepository[Geofence]):
    def __init__(self):
        super().__init__(Geofence)

    def get_latest(self, db: Session) -> Optional[Geofence]:
        """Get the newest persisted geofence using ORM"""
        return db.query(Geofence).order_by(Geofence.gf_id.desc()).first()

    def save_latest(self, db: Session, geofence_data: dict) -> Geofence:
        """
        Update the newest geofence row in place, or insert the first one.

        The revision is bumped inside the UPDATE statement, so concurrent
        writers each get their own revision.
        """
        newest_id = select(func.max(Geofence.gf_id)).scalar_subquery()
        stmt = (
            update(Geofence)
            .where(Geofence.gf_id == newest_id)
            .values(gf_revision=Geofence.gf_revision + 1, **geofence_data)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        if result.rowcount == 0:
            db.add(Geofence(gf_revision=1, **geofence_data))
        db.commit()

        latest = self.get_latest(db)
        db.refresh(latest)
        return latest
