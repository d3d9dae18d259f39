import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import ErrorCode
from app.models.face_profile import FaceProfile
from app.services.face_service import DEFAULT_POLICY, FaceService, encode, score
from atams.exceptions import NotFoundException


def test_encode_is_deterministic():
    assert encode("face-A") == encode("face-A")
    assert encode("face-A") == encode(b"face-A")
    assert encode("face-A") != encode("face-B")


def test_score_of_identical_encodings_is_one():
    digest = encode("face-A")

    result = score(digest, digest, 0.7)

    assert result.value == 1.0
    assert result.matched is True


def test_score_with_empty_encoding_is_zero():
    assert score("", encode("face-A"), 0.6).value == 0.0
    assert score(None, encode("face-A"), 0.6).matched is False


def test_score_counts_matching_byte_positions():
    import base64
    a = base64.b64encode(bytes([1, 2, 3, 4])).decode()
    b = base64.b64encode(bytes([1, 9, 3, 9, 5, 6])).decode()

    result = score(a, b, 0.6)

    assert result.value == 0.5
    assert result.matched is False


def test_verify_without_profile(db):
    result = FaceService().verify(db, 101, "face-A")

    assert result.verified is False
    assert result.score == 0.0
    assert result.reason == ErrorCode.NO_FACE_REGISTERED.value


def test_verify_match_updates_bookkeeping(db):
    service = FaceService()
    service.register(db, 101, "face-A")

    result = service.verify(db, 101, "face-A")

    assert result.verified is True
    assert result.confidence == 100
    profile = db.get(FaceProfile, 101)
    db.refresh(profile)
    assert profile.fp_verification_count == 1
    assert profile.fp_last_verified_at is not None


def test_verify_mismatch_leaves_bookkeeping(db):
    service = FaceService()
    service.register(db, 101, "face-A")

    result = service.verify(db, 101, "face-B", threshold=0.7)

    assert result.verified is False
    assert result.score < 0.7
    profile = db.get(FaceProfile, 101)
    db.refresh(profile)
    assert profile.fp_verification_count == 0


def test_bookkeeping_failure_does_not_change_result(db, monkeypatch):
    service = FaceService()
    service.register(db, 101, "face-A")

    def broken(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(service.repo, "mark_verified", broken)

    result = service.verify(db, 101, "face-A")

    assert result.verified is True
    assert result.score == 1.0


def test_register_replaces_encoding_and_resets_counters(db):
    service = FaceService()
    service.register(db, 101, "face-A")
    service.verify(db, 101, "face-A")

    profile = service.register(db, 101, "face-B")

    assert profile.fp_encoding == encode("face-B")
    assert profile.fp_verification_count == 0
    assert service.verify(db, 101, "face-B").verified is True


def test_status_and_policy_defaults(db):
    service = FaceService()

    status = service.get_status(db, 101)

    assert status["face_registered"] is False
    assert status["security_settings"] == DEFAULT_POLICY


def test_update_policy_merges_partial_changes(db):
    service = FaceService()

    policy = service.update_policy(db, 101, {"allow_proxy_attendance": True})

    assert policy == {
        "require_face_verification": True,
        "allow_proxy_attendance": True,
        "max_verification_attempts": 3
    }
    assert service.update_policy(db, 101, {"max_verification_attempts": 5})["allow_proxy_attendance"] is True


def test_admin_list_and_delete(db):
    service = FaceService()
    service.register(db, 101, "face-A")
    service.register(db, 102, "face-B")

    assert [s["user_id"] for s in service.list_status(db)] == [101, 102]

    service.delete(db, 101)
    assert service.get_status(db, 101)["face_registered"] is False
    with pytest.raises(NotFoundException):
        service.delete(db, 101)
