"""Outbound SMS + email channels and the host RSVP notification.

Both channels are optional: a missing credential disables the channel and
callers get ``None`` back from the factory. Host notifications are
best-effort; the RSVP write has already committed when they run, so a
failed send is logged and reported, never raised.
"""
import html as html_lib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import resend
from twilio.rest import Client as TwilioClient

from yup_rsvp.config import settings
from yup_rsvp.models.response import ResponseType

logger = logging.getLogger(__name__)

RESPONSE_WORDS = {
    ResponseType.yup: "YES",
    ResponseType.nope: "NO",
    ResponseType.maybe: "MAYBE",
}

SMS_OPT_OUT_FOOTER = "\n\nReply STOP to opt out"


class SmsSender:
    """Twilio-backed SMS channel."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str):
        self._client = TwilioClient(account_sid, auth_token)
        self._from_number = from_number

    def send(self, to: str, body: str) -> str:
        message = self._client.messages.create(body=body, from_=self._from_number, to=to)
        logger.info("SMS %s sent to %s", message.sid, to)
        return message.sid


class EmailSender:
    """Resend-backed email channel."""

    def __init__(self, api_key: str, sender: str):
        resend.api_key = api_key
        self._sender = sender

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None,
             from_name: Optional[str] = None) -> Optional[str]:
        params = {
            "from": f"{from_name} <{self._sender}>" if from_name else self._sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text
        result = resend.Emails.send(params)
        message_id = result.get("id")
        logger.info("Email %s sent to %s: %s", message_id, to, subject)
        return message_id


@dataclass
class NotificationResult:
    sms_sent: bool = False
    email_sent: bool = False


def format_rsvp_sms(respondent_name: str, event_title: str, response_type: ResponseType, guest_count: int) -> str:
    """Render the host SMS, e.g. 'New RSVP: Ana responded YES to "Launch" (bringing 1 guest)'."""
    word = RESPONSE_WORDS[ResponseType(response_type)]
    extra = guest_count - 1
    guest_text = f" (bringing {extra} guest{'s' if extra > 1 else ''})" if extra > 0 else ""
    return f'New RSVP: {respondent_name} responded {word} to "{event_title}"{guest_text}{SMS_OPT_OUT_FOOTER}'


def format_rsvp_email(respondent_name: str, event_title: str, response_type: ResponseType,
                      guest_count: int) -> tuple[str, str]:
    """Return (subject, html) for the host email."""
    word = RESPONSE_WORDS[ResponseType(response_type)]
    subject = f"New RSVP for {event_title}"
    name = html_lib.escape(respondent_name)
    title = html_lib.escape(event_title)
    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2>New RSVP for {title}</h2>
        <p><strong>{name}</strong> responded <strong>{word}</strong>.</p>
        <p>Party size: {guest_count}</p>
    </div>
    """
    return subject, html


class Notifier:
    """Bundles the configured channels; injected into routes via ``get_notifier``."""

    def __init__(self, sms: Optional[SmsSender] = None, email: Optional[EmailSender] = None):
        self.sms = sms
        self.email = email

    def notify_host_of_rsvp(
        self,
        host_phone: Optional[str],
        host_email: Optional[str],
        respondent_name: str,
        event_title: str,
        response_type: ResponseType,
        guest_count: int,
    ) -> NotificationResult:
        """Tell the host about an RSVP on every channel available. Never raises."""
        result = NotificationResult()

        if host_phone and self.sms:
            try:
                self.sms.send(host_phone, format_rsvp_sms(respondent_name, event_title, response_type, guest_count))
                result.sms_sent = True
            except Exception:
                logger.exception("Failed to send RSVP SMS to host for event '%s'", event_title)
        elif host_phone:
            logger.info("SMS not configured, skipping host notification for '%s'", event_title)

        if host_email and self.email:
            try:
                subject, html = format_rsvp_email(respondent_name, event_title, response_type, guest_count)
                self.email.send(host_email, subject, html)
                result.email_sent = True
            except Exception:
                logger.exception("Failed to send RSVP email to host for event '%s'", event_title)

        return result


@lru_cache
def get_notifier() -> Notifier:
    """FastAPI dependency: process-wide notifier built from settings."""
    sms = None
    email = None
    if settings.sms_enabled:
        sms = SmsSender(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_PHONE_NUMBER)
    if settings.email_enabled:
        email = EmailSender(settings.RESEND_API_KEY, settings.SENDER_EMAIL)
    return Notifier(sms=sms, email=email)
