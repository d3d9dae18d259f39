"""
Notification Endpoints - Server-Sent Events stream of attendance events
"""
import asyncio
import queue

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.deps import require_auth, require_min_role_level
from app.core.security import is_staff, resolve_role
from app.services.notification_service import FACULTY_ROOM, notification_service, user_room

router = APIRouter()

KEEPALIVE_SECONDS = 15
POLL_SECONDS = 0.5


@router.get(
    "/stream",
    dependencies=[Depends(require_min_role_level(1))]
)
async def stream_notifications(
    request: Request,
    current_user: dict = Depends(require_auth)
):
    """
    Subscribe to attendance events

    Every user receives their personal ``notification`` events; faculty and
    above also receive ``attendance-update`` and ``student_exit``.
    """
    rooms = {user_room(current_user["user_id"])}
    if is_staff(resolve_role(current_user)):
        rooms.add(FACULTY_ROOM)

    subscription = notification_service.subscribe(rooms)

    async def event_stream():
        idle = 0.0
        try:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    message = subscription.queue.get_nowait()
                except queue.Empty:
                    await asyncio.sleep(POLL_SECONDS)
                    idle += POLL_SECONDS
                    if idle >= KEEPALIVE_SECONDS:
                        idle = 0.0
                        yield ": keep-alive\n\n"
                    continue
                idle = 0.0
                yield message
        finally:
            notification_service.unsubscribe(subscription)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    )
