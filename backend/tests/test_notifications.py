"""Tests for SMS/email formatting and the best-effort notifier."""
from yup_rsvp.models.response import ResponseType
from yup_rsvp.services import notification_service
from yup_rsvp.services.notification_service import (
    EmailSender, Notifier, SmsSender, format_rsvp_email, format_rsvp_sms, get_notifier,
)


class FakeSms:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, to, body):
        if self.fail:
            raise RuntimeError("carrier rejected")
        self.sent.append((to, body))
        return "SM123"


class FakeEmail:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, to, subject, html, text=None, from_name=None):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((to, subject, html))
        return "em_1"


class TestFormatting:

    def test_sms_single_attendee(self):
        body = format_rsvp_sms("Ana", "Launch Party", ResponseType.yup, 1)
        assert body == 'New RSVP: Ana responded YES to "Launch Party"\n\nReply STOP to opt out'

    def test_sms_one_extra_guest(self):
        body = format_rsvp_sms("Ana", "Launch Party", ResponseType.maybe, 2)
        assert body.startswith('New RSVP: Ana responded MAYBE to "Launch Party" (bringing 1 guest)')

    def test_sms_several_extra_guests(self):
        body = format_rsvp_sms("Ana", "Launch Party", "nope", 4)
        assert '(bringing 3 guests)' in body
        assert "responded NO" in body

    def test_email(self):
        subject, html = format_rsvp_email("Ana", "Launch Party", ResponseType.yup, 2)
        assert subject == "New RSVP for Launch Party"
        assert "<strong>Ana</strong>" in html
        assert "Party size: 2" in html

    def test_email_escapes_guest_supplied_text(self):
        subject, html = format_rsvp_email("<img src=x onerror=alert(1)>", "Tom & Jerry <Live>", ResponseType.yup, 1)
        assert "<img" not in html
        assert "&lt;img src=x onerror=alert(1)&gt;" in html
        assert "Tom &amp; Jerry &lt;Live&gt;" in html
        assert subject == "New RSVP for Tom & Jerry <Live>"


class TestNotifier:

    def test_both_channels(self):
        sms, email = FakeSms(), FakeEmail()
        result = Notifier(sms=sms, email=email).notify_host_of_rsvp(
            "+15550001", "host@example.com", "Ana", "Launch Party", ResponseType.yup, 1,
        )
        assert result.sms_sent and result.email_sent
        assert sms.sent[0][0] == "+15550001"
        assert email.sent[0][1] == "New RSVP for Launch Party"

    def test_failures_are_reported_not_raised(self):
        result = Notifier(sms=FakeSms(fail=True), email=FakeEmail(fail=True)).notify_host_of_rsvp(
            "+15550001", "host@example.com", "Ana", "Launch Party", ResponseType.yup, 1,
        )
        assert result.sms_sent is False
        assert result.email_sent is False

    def test_host_without_contact_details(self):
        sms, email = FakeSms(), FakeEmail()
        result = Notifier(sms=sms, email=email).notify_host_of_rsvp(
            None, None, "Ana", "Launch Party", ResponseType.yup, 1,
        )
        assert not result.sms_sent and not result.email_sent
        assert sms.sent == [] and email.sent == []

    def test_unconfigured_channels_skipped(self):
        result = Notifier().notify_host_of_rsvp("+15550001", "host@example.com", "Ana", "T", ResponseType.yup, 1)
        assert not result.sms_sent and not result.email_sent


class TestChannels:

    def test_email_sender_builds_resend_params(self, monkeypatch):
        captured = {}

        def fake_send(params):
            captured.update(params)
            return {"id": "re_42"}

        monkeypatch.setattr(notification_service.resend.Emails, "send", fake_send)
        sender = EmailSender("re_test_key", "rsvp@yup.rsvp")
        message_id = sender.send("guest@example.com", "Hello", "<p>Hi</p>", text="Hi", from_name="Hana")

        assert message_id == "re_42"
        assert captured["from"] == "Hana <rsvp@yup.rsvp>"
        assert captured["to"] == ["guest@example.com"]
        assert captured["text"] == "Hi"

    def test_sms_sender_uses_twilio_messages(self):
        class Message:
            sid = "SM999"

        class Messages:
            def __init__(self):
                self.kwargs = None

            def create(self, **kwargs):
                self.kwargs = kwargs
                return Message()

        class FakeClient:
            messages = Messages()

        sender = SmsSender("ACxxxxxxxx", "token", "+15550000")
        sender._client = FakeClient()
        assert sender.send("+15550001", "hi") == "SM999"
        assert FakeClient.messages.kwargs == {"body": "hi", "from_": "+15550000", "to": "+15550001"}

    def test_get_notifier_without_credentials(self, monkeypatch):
        monkeypatch.setattr(notification_service.settings, "TWILIO_ACCOUNT_SID", "")
        monkeypatch.setattr(notification_service.settings, "RESEND_API_KEY", "")
        get_notifier.cache_clear()
        try:
            notifier = get_notifier()
            assert notifier.sms is None
            assert notifier.email is None
        finally:
            get_notifier.cache_clear()
