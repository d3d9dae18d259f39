"""
Maintenance Endpoints - System maintenance and cleanup operations
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.cleanup_service import CleanupService
from app.schemas import DataResponse
from app.api.deps import require_min_role_level
from app.core.security import STAFF_MIN_LEVEL
from pydantic import BaseModel

router = APIRouter()
cleanup_service = CleanupService()


class CleanupResult(BaseModel):
    """Cleanup operation result"""
    expired_count: int
    message: str


@router.post(
    "/expire-sessions",
    response_model=DataResponse[CleanupResult],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_min_role_level(STAFF_MIN_LEVEL))]
)
async def expire_sessions(
    db: Session = Depends(get_db)
):
    """
    Close active verification sessions whose QR token has expired

    **Authorization:**
    - Faculty or above

    **Use case:**
    - Keeps stale sessions from tripping the multiple-active-sessions check
    - Can be run periodically by a scheduled job
    """
    expired_count = cleanup_service.expire_stale_sessions(db)

    result = CleanupResult(
        expired_count=expired_count,
        message=f"Expired {expired_count} stale verification sessions"
    )

    return DataResponse(
        success=True,
        message="Session cleanup completed",
        data=result
    )
