import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ATLAS_APP_CODE", "SMARTPRESENCE")
os.environ.setdefault("ENCRYPTION_ENABLED", "false")
os.environ.setdefault("LOGGING_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from atams.db import Base
from app import models  # noqa: F401
from app.api.deps import require_auth
from app.db.session import get_db
from app.main import app
from app.services.geofence_service import GeoPoint, default_geofence, geofence_service

CAMPUS = GeoPoint(lat=15.797113, lng=78.077443)
ON_CAMPUS = {"latitude": CAMPUS.lat, "longitude": CAMPUS.lng, "accuracy": 10}
OFF_CAMPUS = {"latitude": 15.9, "longitude": 78.2, "accuracy": 10}

STUDENT = {
    "user_id": 101,
    "username": "student",
    "role_level": 1,
    "roles": [{"role_code": "student", "app_code": "SMARTPRESENCE"}],
}
OTHER_STUDENT = {
    "user_id": 102,
    "username": "student2",
    "role_level": 1,
    "roles": [{"role_code": "student", "app_code": "SMARTPRESENCE"}],
}
FACULTY = {
    "user_id": 201,
    "username": "faculty",
    "role_level": 20,
    "roles": [{"role_code": "faculty", "app_code": "SMARTPRESENCE"}],
}
ADMIN = {
    "user_id": 501,
    "username": "admin",
    "role_level": 50,
    "roles": [{"role_code": "admin", "app_code": "SMARTPRESENCE"}],
}


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'attendance.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_geofence(monkeypatch):
    monkeypatch.setattr(geofence_service, "_config", default_geofence())


@pytest.fixture
def client(session_factory):
    """TestClient whose acting user is switched with ``client.login(user)``"""
    current = {"user": STUDENT}

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[require_auth] = lambda: current["user"]

    test_client = TestClient(app)
    test_client.login = lambda user: current.update(user=user)
    yield test_client

    app.dependency_overrides.clear()
