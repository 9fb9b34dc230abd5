"""Invitation lifecycle: creation, email delivery and status tracking.

Every status write goes through ``transition`` so the state machine stays in
one place:

    pending   -> sent | failed | viewed | responded
    failed    -> sent | failed
    sent      -> viewed | responded | sent
    viewed    -> responded
    responded -> responded
"""
import html
import logging
import re
import secrets
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from yup_rsvp.config import settings
from yup_rsvp.models.event import Event
from yup_rsvp.models.invitation import Invitation, InvitationStatus
from yup_rsvp.models.user import User
from yup_rsvp.services import access_service
from yup_rsvp.services.event_service import get_event_or_404
from yup_rsvp.services.notification_service import EmailSender
from yup_rsvp.services.user_service import get_user_or_404

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[InvitationStatus, set[InvitationStatus]] = {
    InvitationStatus.pending: {
        InvitationStatus.sent, InvitationStatus.failed, InvitationStatus.viewed, InvitationStatus.responded,
    },
    InvitationStatus.failed: {InvitationStatus.sent, InvitationStatus.failed},
    InvitationStatus.sent: {InvitationStatus.viewed, InvitationStatus.responded, InvitationStatus.sent},
    InvitationStatus.viewed: {InvitationStatus.responded},
    InvitationStatus.responded: {InvitationStatus.responded},
}

DEFAULT_SUBJECT = "You're invited to {{event_name}}"
DEFAULT_TEMPLATE = (
    "Hi {{recipient_name}},\n\n"
    "{{host_name}} has invited you to {{event_name}} on {{event_date}} at {{event_time}}.\n"
    "Location: {{event_location}}\n\n"
    "{{event_description}}\n\n"
    "Let them know if you can make it: {{rsvp_link}}"
)
_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def can_transition(current: InvitationStatus, new: InvitationStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[InvitationStatus(current)]


def transition(invitation: Invitation, new_status: InvitationStatus) -> Invitation:
    """Move an invitation to ``new_status`` and stamp the matching timestamp."""
    current = InvitationStatus(invitation.status)
    if not can_transition(current, new_status):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invitation cannot move from '{current.value}' to '{new_status.value}'",
        )
    now = datetime.now(timezone.utc)
    invitation.status = new_status
    if new_status == InvitationStatus.sent:
        invitation.sent_at = now
    elif new_status == InvitationStatus.viewed and invitation.viewed_at is None:
        invitation.viewed_at = now
    elif new_status == InvitationStatus.responded:
        invitation.responded_at = now
    return invitation


def mark_viewed(invitation: Invitation) -> None:
    """Record that the recipient opened their link. Later states are left alone."""
    if invitation.status in (InvitationStatus.viewed, InvitationStatus.responded):
        return
    if can_transition(invitation.status, InvitationStatus.viewed):
        transition(invitation, InvitationStatus.viewed)
    elif invitation.viewed_at is None:
        invitation.viewed_at = datetime.now(timezone.utc)


def get_by_token_or_404(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(Invitation.invitation_token == token).first()
    if not invitation:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


def render_template(template: str, context: dict[str, str]) -> str:
    """Replace ``{{name}}`` placeholders; unknown placeholders are kept verbatim."""
    return _PLACEHOLDER.sub(lambda m: context.get(m.group(1), m.group(0)), template)


def rsvp_link(event: Event, invitation: Invitation) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/events/{event.slug}?inv={invitation.invitation_token}"


def _template_context(event: Event, host: User, invitation: Invitation) -> dict[str, str]:
    d = event.date
    return {
        "event_name": event.title,
        "event_date": f"{d:%A, %B} {d.day}, {d.year}",
        "event_time": event.start_time.strftime("%I:%M %p").lstrip("0"),
        "event_location": event.location,
        "event_description": event.description or "",
        "host_name": host.display_name or host.email or "Someone",
        "rsvp_link": rsvp_link(event, invitation),
        "recipient_name": invitation.recipient_name or "there",
    }


def list_invitations(db: Session, slug: str, actor_user_id: str) -> list[Invitation]:
    event = get_event_or_404(db, slug)
    access_service.require_host(event, actor_user_id)
    return (
        db.query(Invitation)
        .filter(Invitation.event_id == event.event_id)
        .order_by(Invitation.created_at, Invitation.invitation_id)
        .all()
    )


def _find_existing(db: Session, event_id: int, email: Optional[str], user_id: Optional[str]) -> Optional[Invitation]:
    query = db.query(Invitation).filter(Invitation.event_id == event_id)
    if user_id:
        found = query.filter(Invitation.user_id == user_id).first()
        if found:
            return found
    if email:
        return query.filter(func.lower(Invitation.recipient_email) == email.lower()).first()
    return None


def create_invitations(db: Session, slug: str, actor_user_id: str, recipients: list[dict[str, Any]]) -> list[Invitation]:
    """Create pending invitations; a recipient already invited gets the existing row back."""
    event = get_event_or_404(db, slug)
    access_service.require_host(event, actor_user_id)

    result: list[Invitation] = []
    created = 0
    for recipient in recipients:
        email = recipient.get("email")
        user_id = recipient.get("user_id")
        if user_id:
            user = get_user_or_404(db, user_id)
            email = email or user.email

        existing = _find_existing(db, event.event_id, email, user_id)
        if existing:
            result.append(existing)
            continue

        invitation = Invitation(
            event_id=event.event_id,
            user_id=user_id,
            recipient_email=email,
            recipient_name=recipient.get("name"),
            invitation_token=secrets.token_urlsafe(24),
            status=InvitationStatus.pending,
        )
        db.add(invitation)
        db.flush()
        result.append(invitation)
        created += 1

    db.commit()
    for invitation in result:
        db.refresh(invitation)
    logger.info("Host %s created %d invitation(s) for event %s", actor_user_id, created, event.event_id)
    return result


def send_invitations(
    db: Session,
    slug: str,
    actor_user_id: str,
    email_sender: Optional[EmailSender],
    subject: Optional[str] = None,
    message_template: Optional[str] = None,
    custom_message: Optional[str] = None,
) -> dict[str, Any]:
    """Email every pending or failed invitation that has an address."""
    event = get_event_or_404(db, slug)
    access_service.require_host(event, actor_user_id)
    host = get_user_or_404(db, event.host_id)

    targets = (
        db.query(Invitation)
        .filter(
            Invitation.event_id == event.event_id,
            Invitation.status.in_([InvitationStatus.pending, InvitationStatus.failed]),
            Invitation.recipient_email.isnot(None),
        )
        .order_by(Invitation.invitation_id)
        .all()
    )

    sent = failed = 0
    for invitation in targets:
        context = _template_context(event, host, invitation)
        body = render_template(message_template or DEFAULT_TEMPLATE, context)
        if custom_message:
            body = f"{body}\n\n{custom_message}"
        text_body = body
        html_body = "<br>".join(html.escape(line) for line in body.split("\n"))
        rendered_subject = render_template(subject or DEFAULT_SUBJECT, context)

        if email_sender is None:
            logger.warning("Email not configured, invitation %s not sent", invitation.invitation_id)
            transition(invitation, InvitationStatus.failed)
            failed += 1
            continue

        try:
            invitation.email_message_id = email_sender.send(
                invitation.recipient_email,
                rendered_subject,
                html_body,
                text=text_body,
                from_name=host.display_name,
            )
            transition(invitation, InvitationStatus.sent)
            sent += 1
        except Exception:
            logger.exception("Failed to email invitation %s", invitation.invitation_id)
            transition(invitation, InvitationStatus.failed)
            failed += 1

    db.commit()
    for invitation in targets:
        db.refresh(invitation)
    logger.info("Event %s invitations: %d sent, %d failed", event.event_id, sent, failed)
    return {"sent": sent, "failed": failed, "invitations": targets}


def preview(db: Session, token: str) -> dict[str, Any]:
    """Invitation landing: marks the invitation viewed and returns what the RSVP page needs."""
    invitation = get_by_token_or_404(db, token)
    mark_viewed(invitation)
    db.commit()
    db.refresh(invitation)
    return {
        "event": invitation.event,
        "recipient_name": invitation.recipient_name,
        "recipient_email": invitation.recipient_email,
        "status": invitation.status,
    }


def link_user(db: Session, token: str, user_id: str) -> Invitation:
    """Attach a registered account to an invitation sent to an email address."""
    invitation = get_by_token_or_404(db, token)
    user = get_user_or_404(db, user_id)
    if invitation.user_id and invitation.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Invitation is linked to another user")
    invitation.user_id = user.user_id
    if not invitation.recipient_email:
        invitation.recipient_email = user.email
    db.commit()
    db.refresh(invitation)
    logger.info("Linked user %s to invitation %s", user_id, invitation.invitation_id)
    return invitation


def find_invitation(
    db: Session,
    event_id: int,
    token: Optional[str] = None,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> Optional[Invitation]:
    """Locate the respondent's invitation by token, then user id, then email."""
    if token:
        invitation = (
            db.query(Invitation)
            .filter(Invitation.invitation_token == token, Invitation.event_id == event_id)
            .first()
        )
        if invitation:
            return invitation
    return _find_existing(db, event_id, email, user_id)


def mark_responded(invitation: Optional[Invitation]) -> None:
    """Advance a respondent's invitation; does not commit."""
    if invitation is None:
        return
    if can_transition(invitation.status, InvitationStatus.responded):
        transition(invitation, InvitationStatus.responded)
    else:
        logger.info(
            "Invitation %s left in '%s' after response", invitation.invitation_id, invitation.status.value,
        )
