import json
from datetime import timedelta

import pytest

from app.core.exceptions import ErrorCode, VerificationError
from app.core.timeutils import utcnow
from app.models.attendance_record import AttendanceRecord
from app.models.scan_token import ScanToken
from app.models.verification_session import VerificationAttempt, VerificationSession
from app.services.attendance_service import AttendanceService
from app.services.face_service import FaceService
from app.services.geofence_service import GeofenceService
from app.services.notification_service import FACULTY_ROOM, NotificationService, user_room
from app.services.token_service import TokenService
from tests.conftest import FACULTY, OFF_CAMPUS, ON_CAMPUS, STUDENT


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def service(notifier):
    return AttendanceService(geofence=GeofenceService(), notifier=notifier)


def events(subscription):
    received = []
    while not subscription.queue.empty():
        event_line = subscription.queue.get_nowait().split("\n")[0]
        received.append(event_line.removeprefix("event: "))
    return received


def test_direct_check_in(db, service, notifier):
    faculty = notifier.subscribe({FACULTY_ROOM})
    personal = notifier.subscribe({user_room(101)})

    record = service.check_in(db, 101, ON_CAMPUS)

    assert record.ar_status == "present"
    assert record.events[0].ae_lat == ON_CAMPUS["latitude"]
    assert events(faculty) == ["attendance-update"]
    assert events(personal) == ["notification"]


@pytest.mark.parametrize("location, code", [
    (None, ErrorCode.LOCATION_REQUIRED),
    ({"latitude": "x", "longitude": 78.0}, ErrorCode.LOCATION_REQUIRED),
    ({"latitude": 15.0, "longitude": 200}, ErrorCode.INVALID_LOCATION),
    (OFF_CAMPUS, ErrorCode.OUTSIDE_CAMPUS),
])
def test_check_in_rejections_leave_no_record(db, service, location, code):
    with pytest.raises(VerificationError) as exc:
        service.check_in(db, 101, location)

    assert exc.value.code == code
    assert db.query(AttendanceRecord).count() == 0


def test_outside_check_out_marks_absent(db, service, notifier):
    faculty = notifier.subscribe({FACULTY_ROOM})
    service.check_in(db, 101, ON_CAMPUS)

    record = service.check_out(db, 101, OFF_CAMPUS)

    assert record.ar_status == "absent"
    assert events(faculty) == ["attendance-update", "student_exit"]


def test_proxy_requires_capable_role(db, service):
    FaceService().update_policy(db, 102, {"allow_proxy_attendance": True})

    with pytest.raises(VerificationError) as exc:
        service.proxy_check_in(db, STUDENT, 102, None)

    assert exc.value.code == ErrorCode.UNAUTHORIZED_PROXY


def test_proxy_requires_subject_opt_in_before_location_checks(db, service):
    with pytest.raises(VerificationError) as exc:
        service.proxy_check_in(db, FACULTY, 102, None)

    assert exc.value.code == ErrorCode.PROXY_NOT_ALLOWED


def test_proxy_check_in(db, service):
    FaceService().update_policy(db, 102, {"allow_proxy_attendance": True})

    record = service.proxy_check_in(db, FACULTY, 102, ON_CAMPUS, reason="Lost phone")

    assert record.ar_user_id == 102
    assert record.ar_is_proxy is True
    assert record.ar_proxy_user_id == FACULTY["user_id"]
    assert record.ar_proxy_approved is True


def test_scan_end_to_end(db, service, notifier):
    faculty = notifier.subscribe({FACULTY_ROOM})
    FaceService().register(db, 101, "face-A")
    issued = service.token_service.issue(db, kind="attendance", issued_by=201)

    outcome = service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS, device_info="pixel")

    assert outcome.face_verified is True
    assert outcome.face_score == 1.0
    assert outcome.record.ar_status == "present"
    assert outcome.record.events[0].ae_method == "qr_face_verification"
    assert outcome.record.events[0].ae_session_id == outcome.session_id
    assert db.get(ScanToken, issued.token.st_id).st_usage_count == 1

    session = db.query(VerificationSession).one()
    assert session.vs_status == "active"
    assert session.vs_face_verified is True
    assert len(session.attempts) == 1
    assert events(faculty) == ["attendance-update"]


def test_scan_retry_updates_the_same_session(db, service):
    FaceService().register(db, 101, "face-A")
    issued = service.token_service.issue(db)

    first = service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)
    second = service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    assert first.session_id == second.session_id
    assert db.query(VerificationAttempt).count() == 2
    assert db.query(AttendanceRecord).count() == 1


def test_scan_requires_payload_and_image(db, service):
    issued = service.token_service.issue(db)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, issued.payload, None, ON_CAMPUS)

    assert exc.value.code == ErrorCode.MISSING_INPUT


def test_scan_outside_campus_consumes_nothing(db, service):
    FaceService().register(db, 101, "face-A")
    issued = service.token_service.issue(db)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, issued.payload, "face-A", OFF_CAMPUS)

    assert exc.value.code == ErrorCode.OUTSIDE_CAMPUS
    assert db.get(ScanToken, issued.token.st_id).st_usage_count == 0


def test_scan_face_mismatch_flags_session(db, service):
    FaceService().register(db, 101, "face-A")
    issued = service.token_service.issue(db)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, issued.payload, "face-B", ON_CAMPUS)

    assert exc.value.code == ErrorCode.FACE_VERIFICATION_FAILED
    assert exc.value.status_code == 401
    assert exc.value.details["requiresRegistration"] is False

    session = db.query(VerificationSession).one()
    assert session.vs_status == "suspicious"
    assert session.vs_security_flags[0]["type"] == "face_mismatch"
    assert len(session.attempts) == 1
    assert db.query(AttendanceRecord).count() == 0
    assert db.get(ScanToken, issued.token.st_id).st_usage_count == 0


def test_scan_without_registered_face_asks_for_registration(db, service):
    issued = service.token_service.issue(db)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    assert exc.value.details["requiresRegistration"] is True


def test_scan_skips_face_check_when_not_required(db, service):
    FaceService().update_policy(db, 101, {"require_face_verification": False})
    issued = service.token_service.issue(db)

    outcome = service.scan(db, 101, issued.payload, "any-image", ON_CAMPUS)

    assert outcome.face_score == 1.0
    assert outcome.face_verified is True


def test_scan_security_alert(db, service):
    FaceService().register(db, 101, "face-A")
    first = service.token_service.issue(db)
    second = service.token_service.issue(db)
    third = service.token_service.issue(db)
    service.scan(db, 101, first.payload, "face-A", ON_CAMPUS)
    service.scan(db, 101, second.payload, "face-A", ON_CAMPUS)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, third.payload, "face-A", ON_CAMPUS)

    assert exc.value.code == ErrorCode.SECURITY_ALERT
    assert exc.value.details["severity"] == "high"
    assert exc.value.details["requiresManualVerification"] is True
    flagged = db.query(VerificationSession).filter(VerificationSession.vs_status == "suspicious").one()
    assert flagged.vs_security_flags[0]["type"] == "suspicious_activity"
    assert flagged.vs_security_flags[0]["severity"] == "high"
    assert db.get(ScanToken, third.token.st_id).st_usage_count == 0


def test_checkout_token_completes_session(db, service, notifier):
    faculty = notifier.subscribe({FACULTY_ROOM})
    FaceService().register(db, 101, "face-A")
    service.check_in(db, 101, ON_CAMPUS)
    issued = service.token_service.issue(db, kind="checkout")

    outcome = service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    assert outcome.record.ar_status == "present"
    assert outcome.record.ar_check_out_at is not None
    session = db.query(VerificationSession).one()
    assert session.vs_status == "completed"
    assert session.vs_ended_at is not None
    assert events(faculty) == ["attendance-update", "student_exit"]


def test_scan_exhausted_token(db, service):
    FaceService().register(db, 101, "face-A")
    FaceService().register(db, 102, "face-B")
    issued = service.token_service.issue(db, max_usage=1)
    service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 102, issued.payload, "face-B", ON_CAMPUS)

    assert exc.value.code == ErrorCode.TOKEN_EXHAUSTED


def test_scan_expired_token(db, service):
    issued = service.token_service.issue(db, now=utcnow() - timedelta(minutes=5))

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    assert exc.value.code == ErrorCode.TOKEN_EXPIRED


def test_notification_payload_is_serializable(db, service, notifier):
    faculty = notifier.subscribe({FACULTY_ROOM})

    service.check_in(db, 101, ON_CAMPUS)

    data_line = faculty.queue.get_nowait().split("\n")[1]
    body = json.loads(data_line.removeprefix("data: "))
    assert body["data"]["user_id"] == 101
    assert body["data"]["status"] == "present"


def test_scan_losing_the_token_race_persists_nothing(db, session_factory, service, notifier, monkeypatch):
    faculty = notifier.subscribe({FACULTY_ROOM})
    FaceService().register(db, 102, "face-B")
    issued = service.token_service.issue(db, max_usage=1)
    token_id = issued.token.st_id
    increment_usage = service.token_service.repo.increment_usage

    def other_scanner_wins_first(session, *args):
        other = session_factory()
        try:
            TokenService().consume(other, token_id)
        finally:
            other.close()
        return increment_usage(session, *args)

    monkeypatch.setattr(service.token_service.repo, "increment_usage", other_scanner_wins_first)

    with pytest.raises(VerificationError) as exc:
        service.scan(db, 102, issued.payload, "face-B", ON_CAMPUS)

    assert exc.value.code == ErrorCode.TOKEN_EXHAUSTED
    assert db.query(AttendanceRecord).filter_by(ar_user_id=102).count() == 0
    assert db.query(VerificationSession).filter_by(vs_user_id=102).count() == 0
    assert db.query(VerificationAttempt).count() == 0
    assert db.get(ScanToken, token_id).st_usage_count == 1
    assert events(faculty) == []


class FailingNotifier:
    def emit(self, room, event, payload=None):
        raise RuntimeError("notification transport down")


def test_notification_failures_do_not_change_results(db):
    service = AttendanceService(geofence=GeofenceService(), notifier=FailingNotifier())
    FaceService().register(db, 101, "face-A")

    checked_in = service.check_in(db, 101, ON_CAMPUS)
    checked_out = service.check_out(db, 101, ON_CAMPUS)
    issued = service.token_service.issue(db)
    outcome = service.scan(db, 101, issued.payload, "face-A", ON_CAMPUS)

    assert checked_in.ar_status == "present"
    assert checked_out.ar_check_out_at is not None
    assert outcome.record.ar_user_id == 101
    assert outcome.face_verified is True
    assert db.get(ScanToken, issued.token.st_id).st_usage_count == 1
