import json

from app.services.notification_service import (
    ATTENDANCE_UPDATE,
    FACULTY_ROOM,
    NotificationService,
    user_room,
)


def read_body(message):
    event_line, data_line = message.strip().split("\n")
    return event_line.removeprefix("event: "), json.loads(data_line.removeprefix("data: "))


def test_emit_reaches_only_room_subscribers():
    service = NotificationService()
    faculty = service.subscribe({FACULTY_ROOM})
    student = service.subscribe({user_room(101)})

    delivered = service.emit(FACULTY_ROOM, ATTENDANCE_UPDATE, {"user_id": 101})

    assert delivered == 1
    event, body = read_body(faculty.queue.get_nowait())
    assert event == ATTENDANCE_UPDATE
    assert body["room"] == FACULTY_ROOM
    assert body["data"] == {"user_id": 101}
    assert student.queue.empty()


def test_full_subscriber_is_dropped_without_error():
    service = NotificationService()
    slow = service.subscribe({FACULTY_ROOM})
    for _ in range(slow.queue.maxsize):
        service.emit(FACULTY_ROOM, ATTENDANCE_UPDATE, {})

    delivered = service.emit(FACULTY_ROOM, ATTENDANCE_UPDATE, {})

    assert delivered == 0
    assert service.subscriber_count() == 0


def test_unsubscribe_stops_delivery():
    service = NotificationService()
    subscription = service.subscribe({user_room(7)})
    service.unsubscribe(subscription)

    assert service.emit(user_room(7), "notification", {"message": "hi"}) == 0
