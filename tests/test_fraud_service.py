from datetime import timedelta

from app.core.timeutils import utcnow
from app.models.verification_session import VerificationAttempt, VerificationSession
from app.services.fraud_service import FraudService
from app.services.token_service import TokenService


def add_session(db, user_id, token_id, status="active", started_at=None, session_id=None):
    session = VerificationSession(
        vs_session_id=session_id or f"sess-{user_id}-{token_id}-{status}-{started_at}",
        vs_token_id=token_id,
        vs_user_id=user_id,
        vs_status=status,
        vs_security_flags=[],
        vs_started_at=started_at or utcnow()
    )
    db.add(session)
    db.commit()
    return session


def add_attempts(db, session, count, at):
    for _ in range(count):
        db.add(VerificationAttempt(va_session_id=session.vs_id, va_user_id=session.vs_user_id, va_attempted_at=at))
    db.commit()


def test_clean_history_is_not_suspicious(db):
    assert FraudService().check(db, 101).suspicious is False


def test_multiple_active_sessions_is_high_severity(db):
    tokens = TokenService()
    now = utcnow()
    add_session(db, 101, tokens.issue(db).token.st_id, started_at=now - timedelta(minutes=5))
    add_session(db, 101, tokens.issue(db).token.st_id, started_at=now - timedelta(minutes=1))

    result = FraudService().check(db, 101, now)

    assert result.suspicious is True
    assert result.severity == "high"
    assert result.reason == "Multiple active sessions detected"


def test_old_or_closed_sessions_are_ignored(db):
    tokens = TokenService()
    now = utcnow()
    add_session(db, 101, tokens.issue(db).token.st_id, started_at=now - timedelta(minutes=45))
    add_session(db, 101, tokens.issue(db).token.st_id, status="completed", started_at=now)
    add_session(db, 101, tokens.issue(db).token.st_id, started_at=now)

    assert FraudService().check(db, 101, now).suspicious is False


def test_rapid_scanning_is_medium_severity(db):
    now = utcnow()
    session = add_session(db, 101, TokenService().issue(db).token.st_id, status="completed", started_at=now)
    add_attempts(db, session, 4, now - timedelta(minutes=2))

    result = FraudService().check(db, 101, now)

    assert result.suspicious is True
    assert result.severity == "medium"
    assert result.reason == "Too many scanning attempts"


def test_attempt_limit_is_exclusive(db):
    now = utcnow()
    session = add_session(db, 101, TokenService().issue(db).token.st_id, status="completed", started_at=now)
    add_attempts(db, session, 3, now - timedelta(minutes=1))
    add_attempts(db, session, 5, now - timedelta(minutes=10))

    assert FraudService().check(db, 101, now).suspicious is False


def test_active_sessions_take_precedence(db):
    tokens = TokenService()
    now = utcnow()
    first = add_session(db, 101, tokens.issue(db).token.st_id, started_at=now)
    add_session(db, 101, tokens.issue(db).token.st_id, started_at=now)
    add_attempts(db, first, 6, now)

    assert FraudService().check(db, 101, now).severity == "high"


def test_other_users_activity_does_not_count(db):
    tokens = TokenService()
    now = utcnow()
    add_session(db, 102, tokens.issue(db).token.st_id, started_at=now)
    add_session(db, 102, tokens.issue(db).token.st_id, started_at=now)

    assert FraudService().check(db, 101, now).suspicious is False
