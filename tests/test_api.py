from datetime import timedelta

from app.core.timeutils import utcnow
from app.models.scan_token import ScanToken
from tests.conftest import ADMIN, FACULTY, OFF_CAMPUS, ON_CAMPUS, OTHER_STUDENT, STUDENT

API = "/api/v1"


def issue_token(client, kind="attendance", max_usage=None):
    client.login(FACULTY)
    body = {"kind": kind}
    if max_usage:
        body["max_usage"] = max_usage
    response = client.post(f"{API}/qr/generate", json=body)
    assert response.status_code == 201
    return response.json()["data"]


def test_check_in(client):
    response = client.post(f"{API}/attendance/check-in", json={"location": ON_CAMPUS})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["ar_user_id"] == STUDENT["user_id"]
    assert data["ar_status"] == "present"
    assert data["events"][0]["ae_event_type"] == "enter"


def test_check_in_outside_campus(client):
    response = client.post(f"{API}/attendance/check-in", json={"location": OFF_CAMPUS})

    assert response.status_code == 403
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "OUTSIDE_CAMPUS"
    assert body["details"]["allowed_radius"] == 1000.0


def test_check_in_without_location(client):
    response = client.post(f"{API}/attendance/check-in", json={})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "LOCATION_REQUIRED"


def test_check_out_outside_campus_marks_absent(client):
    client.post(f"{API}/attendance/check-in", json={"location": ON_CAMPUS})

    response = client.post(f"{API}/attendance/check-out", json={"location": OFF_CAMPUS})

    assert response.status_code == 200
    assert response.json()["data"]["ar_status"] == "absent"


def test_proxy_check_in_requires_opt_in(client):
    client.login(FACULTY)

    response = client.post(
        f"{API}/attendance/proxy-check-in",
        json={"user_id": OTHER_STUDENT["user_id"], "location": ON_CAMPUS}
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PROXY_NOT_ALLOWED"


def test_proxy_check_in(client):
    client.login(OTHER_STUDENT)
    client.put(f"{API}/face/security-settings", json={"allow_proxy_attendance": True})
    client.login(FACULTY)

    response = client.post(
        f"{API}/attendance/proxy-check-in",
        json={"user_id": OTHER_STUDENT["user_id"], "location": ON_CAMPUS, "reason": "Phone broken"}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["ar_is_proxy"] is True
    assert data["ar_proxy_user_id"] == FACULTY["user_id"]


def test_student_cannot_relax_own_face_policy(client):
    response = client.put(f"{API}/face/security-settings", json={
        "allow_proxy_attendance": True,
        "require_face_verification": False
    })
    assert response.status_code == 422

    admin_route = f"{API}/face/admin/{STUDENT['user_id']}/security-settings"
    assert client.put(admin_route, json={"require_face_verification": False}).status_code == 403

    settings = client.get(f"{API}/face/status").json()["data"]["security_settings"]
    assert settings["require_face_verification"] is True
    assert settings["allow_proxy_attendance"] is False


def test_admin_updates_face_policy(client):
    client.put(f"{API}/face/security-settings", json={"allow_proxy_attendance": True})
    client.login(ADMIN)

    response = client.put(
        f"{API}/face/admin/{STUDENT['user_id']}/security-settings",
        json={"max_verification_attempts": 5}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["max_verification_attempts"] == 5
    assert data["require_face_verification"] is True
    assert data["allow_proxy_attendance"] is True


def test_student_cannot_reach_staff_routes(client):
    assert client.post(f"{API}/attendance/proxy-check-in", json={"user_id": 102}).status_code == 403
    assert client.post(f"{API}/qr/generate", json={}).status_code == 403
    assert client.get(f"{API}/qr/active").status_code == 403
    assert client.post(f"{API}/maintenance/expire-sessions").status_code == 403


def test_history_views(client):
    client.post(f"{API}/attendance/check-in", json={"location": ON_CAMPUS})

    history = client.get(f"{API}/attendance/me", params={"limit": 10}).json()
    assert history["total"] == 1
    assert history["page"] == 1
    assert history["pages"] == 1

    today = client.get(f"{API}/attendance/me/today").json()
    assert today["data"]["ar_status"] == "present"

    summary = client.get(f"{API}/attendance/summary").json()["data"]
    assert summary == {"total_days": 1, "present_days": 1, "absent_days": 0, "attendance_rate": 100.0}

    client.login(FACULTY)
    day = client.get(f"{API}/attendance/date/{utcnow().date().isoformat()}").json()["data"]
    assert [r["ar_user_id"] for r in day] == [STUDENT["user_id"]]


def test_today_without_record(client):
    response = client.get(f"{API}/attendance/me/today")

    assert response.status_code == 200
    assert response.json()["data"] is None


def test_generate_and_scan(client):
    issued = issue_token(client)
    assert issued["token"]["st_issued_by"] == FACULTY["user_id"]
    assert issued["expires_in"] == 60

    active = client.get(f"{API}/qr/active").json()["data"]
    assert [t["st_id"] for t in active] == [issued["token"]["st_id"]]

    client.login(STUDENT)
    assert client.post(f"{API}/face/register", json={"image": "face-A"}).status_code == 201

    response = client.post(f"{API}/qr/scan", json={
        "payload": issued["payload"],
        "face_image": "face-A",
        "location": ON_CAMPUS,
        "device_info": "test-device"
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["attendance"]["ar_status"] == "present"
    assert data["verification"]["face_verified"] is True
    assert data["verification"]["session_id"].startswith("sess_")


def test_scan_with_forged_payload(client):
    response = client.post(f"{API}/qr/scan", json={
        "payload": "not-a-token",
        "face_image": "face-A",
        "location": ON_CAMPUS
    })

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "TOKEN_NOT_FOUND"


def test_scan_missing_input(client):
    response = client.post(f"{API}/qr/scan", json={"location": ON_CAMPUS})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_INPUT"


def test_scan_face_mismatch(client):
    issued = issue_token(client)
    client.login(STUDENT)
    client.post(f"{API}/face/register", json={"image": "face-A"})

    response = client.post(f"{API}/qr/scan", json={
        "payload": issued["payload"],
        "face_image": "someone-else",
        "location": ON_CAMPUS
    })

    assert response.status_code == 401
    body = response.json()
    assert body["error"]["code"] == "FACE_VERIFICATION_FAILED"
    assert body["details"]["requiresRegistration"] is False


def test_exhausted_token(client):
    issued = issue_token(client, max_usage=1)
    for user, image in ((STUDENT, "face-A"), (OTHER_STUDENT, "face-B")):
        client.login(user)
        client.post(f"{API}/face/register", json={"image": image})

    client.login(STUDENT)
    first = client.post(f"{API}/qr/scan", json={
        "payload": issued["payload"], "face_image": "face-A", "location": ON_CAMPUS
    })
    client.login(OTHER_STUDENT)
    second = client.post(f"{API}/qr/scan", json={
        "payload": issued["payload"], "face_image": "face-B", "location": ON_CAMPUS
    })

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "TOKEN_EXHAUSTED"


def test_geofence_update_and_read(client):
    client.login(ADMIN)

    response = client.post(f"{API}/geofence", json={
        "center": {"lat": 12.9716, "lng": 77.5946},
        "radiusMeters": 500
    })

    assert response.status_code == 200
    assert response.json()["data"]["revision"] == 1

    current = client.get(f"{API}/geofence").json()["data"]
    assert current["center"] == {"lat": 12.9716, "lng": 77.5946}
    assert current["radius_meters"] == 500
    assert current["source"] == "persisted"

    result = client.post(f"{API}/geofence/test", json={"location": ON_CAMPUS}).json()["data"]
    assert result["inside"] is False


def test_geofence_update_rejects_bad_radius(client):
    client.login(ADMIN)

    response = client.post(f"{API}/geofence", json={
        "center": {"lat": 12.9716, "lng": 77.5946},
        "radiusMeters": 0
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_LOCATION"
    assert client.get(f"{API}/geofence").json()["data"]["source"] == "default"


def test_geofence_update_requires_admin(client):
    client.login(FACULTY)

    response = client.post(f"{API}/geofence", json={
        "center": {"lat": 12.9716, "lng": 77.5946},
        "radiusMeters": 500
    })

    assert response.status_code == 403


def test_face_verify_without_registration(client):
    response = client.post(f"{API}/face/verify", json={"image": "face-A"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "NO_FACE_REGISTERED"
    assert body["details"]["requiresRegistration"] is True


def test_face_status_and_admin_delete(client):
    client.post(f"{API}/face/register", json={"image": "face-A"})

    face_status = client.get(f"{API}/face/status").json()["data"]
    assert face_status["face_registered"] is True

    client.login(ADMIN)
    listing = client.get(f"{API}/face/admin/students").json()["data"]
    assert [s["user_id"] for s in listing] == [STUDENT["user_id"]]

    assert client.delete(f"{API}/face/admin/{STUDENT['user_id']}").status_code == 204
    assert client.delete(f"{API}/face/admin/{STUDENT['user_id']}").status_code == 404


def test_expire_sessions(client, session_factory):
    issued = issue_token(client)
    client.login(STUDENT)
    client.post(f"{API}/face/register", json={"image": "face-A"})
    client.post(f"{API}/qr/scan", json={
        "payload": issued["payload"], "face_image": "face-A", "location": ON_CAMPUS
    })

    db = session_factory()
    try:
        token = db.get(ScanToken, issued["token"]["st_id"])
        token.st_expires_at = utcnow() - timedelta(seconds=1)
        db.commit()
    finally:
        db.close()

    client.login(FACULTY)
    response = client.post(f"{API}/maintenance/expire-sessions")

    assert response.status_code == 200
    assert response.json()["data"]["expired_count"] == 1
