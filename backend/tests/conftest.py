"""Pytest fixtures: file-backed SQLite database and a recording notifier."""
import os
from datetime import date, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from yup_rsvp.database import Base, get_db
from yup_rsvp.main import app
from yup_rsvp.models.user import User
from yup_rsvp.services import access_service
from yup_rsvp.services.notification_service import Notifier, NotificationResult, get_notifier

SQLITE_URL = "sqlite:///./test.db"


class FakeEmailSender:
    """Stands in for the Resend channel; records messages instead of sending."""

    def __init__(self, fail_for: tuple = ()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, to, subject, html, text=None, from_name=None):
        if to in self.fail_for:
            raise RuntimeError(f"mailbox unavailable: {to}")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text, "from_name": from_name})
        return f"msg-{len(self.sent)}"


class RecordingNotifier(Notifier):
    def __init__(self, email=None):
        super().__init__(sms=None, email=email)
        self.calls = []

    def notify_host_of_rsvp(self, host_phone, host_email, respondent_name, event_title, response_type, guest_count):
        self.calls.append({
            "host_phone": host_phone,
            "host_email": host_email,
            "respondent_name": respondent_name,
            "event_title": event_title,
            "response_type": response_type,
            "guest_count": guest_count,
        })
        return NotificationResult(sms_sent=bool(host_phone), email_sent=bool(host_email))


@pytest.fixture(autouse=True)
def _clear_flag_cache():
    access_service.clear_flag_cache()
    yield
    access_service.clear_flag_cache()


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def email_sender():
    return FakeEmailSender()


@pytest.fixture(scope="function")
def notifier(email_sender):
    return RecordingNotifier(email=email_sender)


@pytest.fixture(scope="function")
def client(db_engine, notifier):
    """TestClient with the database and notifier dependencies overridden."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create rows via the API and return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, username: str = "tester", display_name: str = None,
                     email: str = None, phone_number: str = None) -> dict:
    resp = client.post("/api/users/", json={
        "username": username,
        "display_name": display_name or username.title(),
        "email": email,
        "phone_number": phone_number,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def event_payload(host_id: str, title: str = "Launch Party", days_ahead: int = 7, **overrides) -> dict:
    payload = {
        "host_id": host_id,
        "title": title,
        "date": (date.today() + timedelta(days=days_ahead)).isoformat(),
        "start_time": "18:00:00",
        "end_time": "22:00:00",
        "timezone": "UTC",
        "location": "Rooftop Bar",
    }
    payload.update(overrides)
    return payload


def create_test_event(client: TestClient, host_id: str, title: str = "Launch Party", **overrides) -> dict:
    resp = client.post("/api/events/", json=event_payload(host_id, title, **overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


def set_plan_flags(db, user_id: str, **flags) -> None:
    """Flip plan flags straight in the database, bypassing the admin API."""
    user = db.query(User).filter(User.user_id == user_id).first()
    for field, value in flags.items():
        setattr(user, field, value)
    db.commit()
