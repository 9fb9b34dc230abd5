"""Tests for RSVP submission, idempotency, validation and visibility."""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from yup_rsvp.models.response import Response, ResponseType
from yup_rsvp.services import response_service
from yup_rsvp.main import app
from yup_rsvp.services.notification_service import Notifier, get_notifier
from tests.conftest import create_test_user, create_test_event, RecordingNotifier


def _rsvp(client, slug, user_id, response_type="yup", guest_count=None):
    body = {"responseType": response_type}
    if guest_count is not None:
        body["guestCount"] = guest_count
    return client.post(f"/api/events/{slug}/responses", params={"actor_user_id": user_id}, json=body)


def _guest_rsvp(client, slug, name="Guest", email=None, response_type="yup", guest_count=None, **extra):
    body = {"responseType": response_type, "guestName": name}
    if email:
        body["guestEmail"] = email
    if guest_count is not None:
        body["guestCount"] = guest_count
    body.update(extra)
    return client.post(f"/api/events/{slug}/guest-responses", json=body)


def _setup(client, **event_overrides):
    host = create_test_user(client, username="host", email="host@example.com", phone_number="+15550001")
    guest = create_test_user(client, username="guest", display_name="Gina")
    event = create_test_event(client, host["user_id"], **event_overrides)
    return host, guest, event


class TestUserResponse:

    def test_first_rsvp_creates_row(self, client):
        _, guest, event = _setup(client)
        resp = _rsvp(client, event["slug"], guest["user_id"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["created"] is True
        assert data["response"]["response_type"] == "yup"
        assert data["response"]["guest_count"] == 1

    def test_repeat_rsvp_overwrites(self, client):
        host, guest, event = _setup(client)
        _rsvp(client, event["slug"], guest["user_id"], "yup")
        _rsvp(client, event["slug"], guest["user_id"], "maybe")
        resp = _rsvp(client, event["slug"], guest["user_id"], "nope")
        assert resp.json()["created"] is False

        rows = client.get(f"/api/events/{event['slug']}/responses", params={"viewer_id": host["user_id"]}).json()
        assert len(rows) == 1
        assert rows[0]["response_type"] == "nope"

    def test_my_response(self, client):
        _, guest, event = _setup(client)
        _rsvp(client, event["slug"], guest["user_id"], "maybe")
        resp = client.get(f"/api/events/{event['slug']}/responses/me", params={"user_id": guest["user_id"]})
        assert resp.status_code == 200
        assert resp.json()["response_type"] == "maybe"

    def test_host_cannot_rsvp(self, client):
        host, _, event = _setup(client)
        assert _rsvp(client, event["slug"], host["user_id"]).status_code == 403

    def test_unknown_user_404(self, client):
        _, _, event = _setup(client)
        assert _rsvp(client, event["slug"], "ghost").status_code == 404

    def test_invalid_response_type_rejected(self, client):
        _, guest, event = _setup(client)
        assert _rsvp(client, event["slug"], guest["user_id"], "perhaps").status_code == 422

    def test_zero_guest_count_rejected(self, client):
        _, guest, event = _setup(client)
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=0).status_code == 422

    def test_guest_count_over_event_limit(self, client):
        _, guest, event = _setup(client, max_guests_per_rsvp=2)
        resp = _rsvp(client, event["slug"], guest["user_id"], guest_count=3)
        assert resp.status_code == 400
        assert "Maximum 2 guests" in resp.json()["detail"]

    def test_guest_count_over_global_limit(self, client):
        _, guest, event = _setup(client, max_guests_per_rsvp=50)
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=11).status_code == 400

    def test_plus_one_disabled(self, client):
        _, guest, event = _setup(client, allow_plus_one=False)
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=2).status_code == 400
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=1).status_code == 200

    def test_closed_event_rejects(self, client):
        _, guest, event = _setup(client, status="closed")
        assert _rsvp(client, event["slug"], guest["user_id"]).status_code == 403

    def test_past_event_rejects(self, client):
        _, guest, event = _setup(client, days_ahead=-2)
        resp = _rsvp(client, event["slug"], guest["user_id"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot RSVP to past events"

    def test_overnight_event_open_until_end_next_day(self, client):
        today_utc = datetime.now(timezone.utc).date()
        _, guest, event = _setup(client, date=today_utc.isoformat(), start_time="23:00:00", end_time="00:30:00")
        assert _rsvp(client, event["slug"], guest["user_id"]).status_code == 200

    def test_overnight_event_that_ended_rejects(self, client):
        two_days_ago = datetime.now(timezone.utc).date() - timedelta(days=2)
        _, guest, event = _setup(client, date=two_days_ago.isoformat(), start_time="23:00:00", end_time="00:30:00")
        assert _rsvp(client, event["slug"], guest["user_id"]).status_code == 400

    def test_withdraw_response(self, client):
        _, guest, event = _setup(client)
        response_id = _rsvp(client, event["slug"], guest["user_id"]).json()["response"]["response_id"]
        resp = client.delete(
            f"/api/events/{event['slug']}/responses/{response_id}", params={"actor_user_id": guest["user_id"]},
        )
        assert resp.status_code == 204
        assert client.get(
            f"/api/events/{event['slug']}/responses/me", params={"user_id": guest["user_id"]},
        ).status_code == 404

    def test_stranger_cannot_withdraw(self, client):
        _, guest, event = _setup(client)
        stranger = create_test_user(client, username="stranger")
        response_id = _rsvp(client, event["slug"], guest["user_id"]).json()["response"]["response_id"]
        resp = client.delete(
            f"/api/events/{event['slug']}/responses/{response_id}", params={"actor_user_id": stranger["user_id"]},
        )
        assert resp.status_code == 403


class TestGuestResponse:

    def test_launch_party_scenario(self, client):
        host = create_test_user(client, username="host")
        create_test_event(client, host["user_id"], title="Launch Party", slug="launch-party-2025")

        resp = _guest_rsvp(client, "launch-party-2025", name="Sam", email="sam@example.com", guest_count=2)
        assert resp.status_code == 200
        assert resp.json()["response_token"]

        rows = client.get("/api/events/launch-party-2025/responses").json()
        assert len(rows) == 1
        assert rows[0]["guest_count"] == 2
        assert rows[0]["is_guest"] is True

    def test_guest_resubmission_by_email_overwrites(self, client):
        _, _, event = _setup(client)
        first = _guest_rsvp(client, event["slug"], name="Sam", email="sam@example.com").json()
        second = _guest_rsvp(client, event["slug"], name="Sam", email="SAM@example.com", response_type="nope").json()
        assert second["created"] is False
        assert second["response"]["response_id"] == first["response"]["response_id"]
        assert second["response_token"] == first["response_token"]

        counts = client.get(f"/api/events/{event['slug']}/responses/count").json()
        assert counts == {"yup": 0, "nope": 1, "maybe": 0, "total_guests": 0}

    def test_guest_without_email_matched_by_name(self, client):
        _, _, event = _setup(client)
        _guest_rsvp(client, event["slug"], name="Pat")
        resp = _guest_rsvp(client, event["slug"], name="Pat", response_type="maybe")
        assert resp.json()["created"] is False

    def test_guest_rsvp_disabled(self, client):
        _, _, event = _setup(client, allow_guest_rsvp=False)
        assert _guest_rsvp(client, event["slug"], name="Sam").status_code == 403

    def test_missing_guest_name_rejected(self, client):
        _, _, event = _setup(client)
        resp = client.post(f"/api/events/{event['slug']}/guest-responses", json={"responseType": "yup"})
        assert resp.status_code == 422

    def test_blank_guest_name_rejected(self, client):
        _, _, event = _setup(client)
        resp = _guest_rsvp(client, event["slug"], name="   ")
        assert resp.status_code == 422
        assert client.get("/api/users/count").json()["responses"] == 0

    def test_guest_name_is_trimmed(self, client):
        _, _, event = _setup(client)
        resp = _guest_rsvp(client, event["slug"], name="  Sam  ")
        assert resp.json()["response"]["guest_name"] == "Sam"

    def test_service_rejects_blank_guest_name(self, client, db, notifier):
        _, _, event = _setup(client)
        with pytest.raises(HTTPException) as exc:
            response_service.submit_guest_response(db, event["slug"], ResponseType.yup, "  ", None, 1, notifier)
        assert exc.value.status_code == 400
        assert notifier.calls == []

    def test_lookup_by_response_token(self, client):
        _, _, event = _setup(client)
        token = _guest_rsvp(client, event["slug"], name="Sam", email="sam@example.com").json()["response_token"]
        resp = client.get(f"/api/events/{event['slug']}/guest-responses", params={"token": token})
        assert resp.status_code == 200
        assert resp.json()["response"]["guest_name"] == "Sam"

    def test_lookup_requires_a_token(self, client):
        _, _, event = _setup(client)
        assert client.get(f"/api/events/{event['slug']}/guest-responses").status_code == 400

    def test_lookup_unknown_token_404(self, client):
        _, _, event = _setup(client)
        resp = client.get(f"/api/events/{event['slug']}/guest-responses", params={"token": "nope"})
        assert resp.status_code == 404


class TestCapacity:

    def test_capacity_counts_party_sizes(self, client):
        _, guest, event = _setup(client, capacity=3)
        assert _guest_rsvp(client, event["slug"], name="Sam", guest_count=2).status_code == 200
        resp = _rsvp(client, event["slug"], guest["user_id"], guest_count=2)
        assert resp.status_code == 409

    def test_own_previous_party_not_double_counted(self, client):
        _, guest, event = _setup(client, capacity=3)
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=3).status_code == 200
        assert _rsvp(client, event["slug"], guest["user_id"], guest_count=2).status_code == 200

    def test_declines_ignore_capacity(self, client):
        _, guest, event = _setup(client, capacity=1)
        _guest_rsvp(client, event["slug"], name="Sam")
        assert _rsvp(client, event["slug"], guest["user_id"], "nope").status_code == 200


class TestHostNotification:

    def test_host_notified_after_rsvp(self, client, notifier):
        host, guest, event = _setup(client)
        _rsvp(client, event["slug"], guest["user_id"], "yup", guest_count=2)
        assert len(notifier.calls) == 1
        call = notifier.calls[0]
        assert call["host_phone"] == host["phone_number"]
        assert call["host_email"] == "host@example.com"
        assert call["respondent_name"] == "Gina"
        assert call["event_title"] == "Launch Party"
        assert call["guest_count"] == 2

    def test_channel_failure_keeps_response(self, client):
        """A failing SMS channel is logged; the RSVP stays committed."""
        class BrokenSms:
            def send(self, to, body):
                raise RuntimeError("twilio down")

        app.dependency_overrides[get_notifier] = lambda: Notifier(sms=BrokenSms())
        _, guest, event = _setup(client)
        resp = _rsvp(client, event["slug"], guest["user_id"])
        assert resp.status_code == 200
        assert client.get(
            f"/api/events/{event['slug']}/responses/me", params={"user_id": guest["user_id"]},
        ).status_code == 200

    def test_notifier_exception_does_not_fail_request(self, client):
        class ExplodingNotifier(RecordingNotifier):
            def notify_host_of_rsvp(self, *args, **kwargs):
                raise RuntimeError("boom")

        app.dependency_overrides[get_notifier] = lambda: ExplodingNotifier()
        _, guest, event = _setup(client)
        assert _rsvp(client, event["slug"], guest["user_id"]).status_code == 200


class TestVisibility:

    def test_guest_emails_shown_to_host_only(self, client):
        host, guest, event = _setup(client)
        _guest_rsvp(client, event["slug"], name="Sam", email="sam@example.com")
        url = f"/api/events/{event['slug']}/responses"

        as_host = client.get(url, params={"viewer_id": host["user_id"]}).json()
        assert as_host[0]["guest_email"] == "sam@example.com"

        for params in ({"viewer_id": guest["user_id"]}, {}):
            rows = client.get(url, params=params).json()
            assert rows[0]["guest_name"] == "Sam"
            assert "guest_email" not in rows[0]

    def test_host_always_sees_responses(self, client):
        host, guest, event = _setup(client, show_rsvps_to_invitees=False)
        _rsvp(client, event["slug"], guest["user_id"])
        resp = client.get(f"/api/events/{event['slug']}/responses", params={"viewer_id": host["user_id"]})
        assert resp.status_code == 200
        assert len(resp.json()) == 1

    def test_hidden_from_invitees(self, client):
        _, guest, event = _setup(client, show_rsvps_to_invitees=False)
        resp = client.get(f"/api/events/{event['slug']}/responses", params={"viewer_id": guest["user_id"]})
        assert resp.status_code == 403

    def test_threshold_reveals_list(self, client):
        _, guest, event = _setup(client, show_rsvps_after_threshold=True, rsvp_visibility_threshold=2)
        _guest_rsvp(client, event["slug"], name="Sam")
        url = f"/api/events/{event['slug']}/responses"
        assert client.get(url, params={"viewer_id": guest["user_id"]}).status_code == 403

        _guest_rsvp(client, event["slug"], name="Alex")
        assert client.get(url, params={"viewer_id": guest["user_id"]}).status_code == 200


class TestConcurrentInsert:

    def test_unique_violation_retried_as_update(self, client, db):
        """A row inserted between the lookup and the insert is overwritten, not duplicated."""
        host, guest, event = _setup(client)
        winner = Response(event_id=event["event_id"], user_id=guest["user_id"],
                          response_type=ResponseType.yup, guest_count=1)
        db.add(winner)
        db.commit()

        calls = {"n": 0}

        def stale_then_fresh():
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return db.query(Response).filter(Response.user_id == guest["user_id"]).first()

        fields = {"event_id": event["event_id"], "user_id": guest["user_id"],
                  "response_type": ResponseType.maybe, "guest_count": 1, "is_guest": False}
        response, created = response_service._upsert(db, stale_then_fresh(), fields, stale_then_fresh)
        db.commit()

        assert created is False
        assert db.query(Response).filter(Response.user_id == guest["user_id"]).count() == 1
        assert response.response_type == ResponseType.maybe

    def test_other_integrity_errors_propagate(self, db):
        fields = {"event_id": 999, "user_id": None, "response_type": ResponseType.yup,
                  "guest_count": 1, "is_guest": True, "guest_name": "x"}
        with pytest.raises(IntegrityError):
            response_service._upsert(db, None, fields, lambda: None)


def test_counts_for_unknown_event(client):
    assert client.get("/api/events/missing/responses/count").status_code == 404


def test_http_errors_are_http_exceptions(db):
    with pytest.raises(HTTPException) as exc:
        response_service.get_user_response(db, "missing", "someone")
    assert exc.value.status_code == 404
