from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campusconnect.api import create_app
from campusconnect.config import Settings
from campusconnect.portal import CampusPortal
from campusconnect.store import RecordStore


STUDENT_EMAIL = "thandi.mokoena@tut4life.ac.za"
STUDENT_NUMBER = "219045671"
PASSWORD = "campus-pass"


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(data_dir=tmp_path / "data")


@pytest.fixture()
def store(settings: Settings) -> RecordStore:
    store = RecordStore(settings.data_dir)
    store.initialize()
    return store


@pytest.fixture()
def portal(store: RecordStore, settings: Settings) -> CampusPortal:
    return CampusPortal(store, email_domain=settings.email_domain)


@pytest.fixture()
def client(settings: Settings, store: RecordStore):
    app = create_app(settings=settings, store=store)
    with TestClient(app) as test_client:
        yield test_client


def student_payload(**overrides):
    payload = {
        "userType": "student",
        "firstName": "Thandi",
        "lastName": "Mokoena",
        "email": STUDENT_EMAIL,
        "password": PASSWORD,
        "studentNumber": STUDENT_NUMBER,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def student(client: TestClient):
    """Register and log in a student, returning the login user record."""

    response = client.post("/api/register", json=student_payload())
    assert response.status_code == 201, response.text
    login = client.post(
        "/api/login",
        json={"userType": "student", "identifier": STUDENT_NUMBER, "password": PASSWORD},
    )
    assert login.status_code == 200, login.text
    return login.json()["user"]
