"""
Notification Service - In-process room broadcaster backing the SSE stream

Delivery is fire-and-forget: a subscriber whose queue is full is dropped
and the emitter never sees an error.
"""
import json
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional

from app.core.config import settings
from app.core.timeutils import utcnow
from atams.logging import get_logger

logger = get_logger(__name__)

FACULTY_ROOM = "faculty"

ATTENDANCE_UPDATE = "attendance-update"
STUDENT_EXIT = "student_exit"
NOTIFICATION = "notification"


def user_room(user_id: int) -> str:
    return f"user-{user_id}"


@dataclass(eq=False)
class Subscription:
    rooms: FrozenSet[str]
    queue: "queue.Queue[str]" = field(default_factory=lambda: queue.Queue(maxsize=settings.NOTIFICATION_QUEUE_SIZE))


class NotificationService:
    def __init__(self) -> None:
        self.subscribers: List[Subscription] = []
        self.subscribers_lock = threading.Lock()

    def subscribe(self, rooms) -> Subscription:
        subscription = Subscription(rooms=frozenset(rooms))
        with self.subscribers_lock:
            self.subscribers.append(subscription)

        logger.info(
            "Notification subscriber connected",
            extra={'extra_data': {"rooms": sorted(subscription.rooms), "total": len(self.subscribers)}}
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self.subscribers_lock:
            if subscription in self.subscribers:
                self.subscribers.remove(subscription)

    def emit(self, room: str, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """
        Queue an event for every subscriber of a room

        Returns:
            int: Number of subscribers the event was delivered to
        """
        message = self.format_message(event, {
            "room": room,
            "data": payload or {},
            "timestamp": utcnow().isoformat()
        })

        delivered = 0
        dropped = []
        with self.subscribers_lock:
            for subscription in self.subscribers:
                if room not in subscription.rooms:
                    continue
                try:
                    subscription.queue.put_nowait(message)
                    delivered += 1
                except queue.Full:
                    dropped.append(subscription)

            for subscription in dropped:
                self.subscribers.remove(subscription)

        if dropped:
            logger.warning(
                "Dropped slow notification subscribers",
                extra={'extra_data': {"room": room, "event": event, "dropped": len(dropped)}}
            )
        return delivered

    @staticmethod
    def format_message(event: str, body: Dict[str, Any]) -> str:
        """SSE wire format: event line, data line, blank line"""
        return f"event: {event}\ndata: {json.dumps(body, default=str)}\n\n"

    def subscriber_count(self) -> int:
        with self.subscribers_lock:
            return len(self.subscribers)


notification_service = NotificationService()
