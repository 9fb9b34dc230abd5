"""Core event service: ownership, plan limits and slugs.

Responsibilities:
- Only the host may update or delete an event
- Free-plan hosts are capped at FREE_PLAN_EVENT_LIMIT events
- Custom RSVP wording is a premium feature
- Slugs are unique, lowercase and hyphenated; generated from the title when absent
"""
import logging
import re
import unicodedata
from typing import Any, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from yup_rsvp.config import settings
from yup_rsvp.models.event import Event, EventStatus
from yup_rsvp.models.invitation import Invitation
from yup_rsvp.models.user import User
from yup_rsvp.services import access_service
from yup_rsvp.services.user_service import get_user_or_404

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
SLUG_MAX_LENGTH = 120

PREMIUM_FIELDS = ("use_custom_rsvp_text", "custom_yes_text", "custom_no_text")
REQUIRED_FIELDS = ("title", "date", "start_time", "end_time", "timezone", "location", "status",
                   "allow_guest_rsvp", "allow_plus_one", "max_guests_per_rsvp", "show_rsvps_to_invitees",
                   "show_rsvps_after_threshold", "rsvp_visibility_threshold", "use_custom_rsvp_text")


def slugify(text: str) -> str:
    """'Launch Party 2025!' -> 'launch-party-2025'."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-") or "event"


def _slug_taken(db: Session, slug: str, exclude_event_id: Optional[int] = None) -> bool:
    query = db.query(Event.event_id).filter(Event.slug == slug)
    if exclude_event_id is not None:
        query = query.filter(Event.event_id != exclude_event_id)
    return query.first() is not None


def unique_slug(db: Session, title: str) -> str:
    base = slugify(title)
    candidate = base
    n = 2
    while _slug_taken(db, candidate):
        suffix = f"-{n}"
        candidate = base[:SLUG_MAX_LENGTH - len(suffix)] + suffix
        n += 1
    return candidate


def _check_explicit_slug(db: Session, slug: str, exclude_event_id: Optional[int] = None) -> None:
    if len(slug) > SLUG_MAX_LENGTH or not SLUG_PATTERN.match(slug):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Slug must be lowercase letters, digits and single hyphens",
        )
    if _slug_taken(db, slug, exclude_event_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Slug '{slug}' is already taken")


def _uses_premium_fields(fields: dict[str, Any]) -> bool:
    return any(fields.get(name) for name in PREMIUM_FIELDS)


def get_event_or_404(db: Session, slug_or_id: str) -> Event:
    """Look an event up by slug, falling back to its numeric id."""
    event = db.query(Event).filter(Event.slug == slug_or_id).first()
    if event is None and slug_or_id.isdigit():
        event = db.query(Event).filter(Event.event_id == int(slug_or_id)).first()
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def create_event(db: Session, fields: dict[str, Any]) -> Event:
    """Create an event for its host, enforcing plan limits and slug uniqueness."""
    host = db.query(User).filter(User.user_id == fields["host_id"]).first()
    if not host:
        raise HTTPException(status_code=404, detail="Host user not found")

    premium = access_service.is_premium(db, host.user_id)
    if not premium:
        event_count = db.query(Event).filter(Event.host_id == host.user_id).count()
        if event_count >= settings.FREE_PLAN_EVENT_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Free accounts are limited to {settings.FREE_PLAN_EVENT_LIMIT} events. "
                    "Upgrade to Pro or Premium for unlimited events."
                ),
            )
        if _uses_premium_fields(fields):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Custom RSVP text requires a premium plan")
    else:
        # Premium hosts' saved wording applies unless the event overrides it
        if fields.get("custom_yes_text") is None:
            fields["custom_yes_text"] = host.custom_yup_text
        if fields.get("custom_no_text") is None:
            fields["custom_no_text"] = host.custom_nope_text

    if fields.get("slug"):
        _check_explicit_slug(db, fields["slug"])
    else:
        fields["slug"] = unique_slug(db, fields["title"])

    event = Event(**fields)
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Created event '%s' (%s, slug=%s) by host %s", event.title, event.event_id, event.slug, host.user_id)
    return event


def list_events(db: Session, host_id: Optional[str] = None, event_status: Optional[EventStatus] = None) -> list[Event]:
    query = db.query(Event)
    if host_id:
        query = query.filter(Event.host_id == host_id)
    if event_status:
        query = query.filter(Event.status == event_status)
    return query.order_by(Event.date, Event.start_time).all()


def list_invited_events(db: Session, user_id: str) -> list[Event]:
    """Events the user holds an invitation to, by user id or by their email address."""
    user = get_user_or_404(db, user_id)
    match = Invitation.user_id == user.user_id
    if user.email:
        match = or_(match, func.lower(Invitation.recipient_email) == user.email.lower())
    return (
        db.query(Event)
        .join(Invitation, Invitation.event_id == Event.event_id)
        .filter(match)
        .distinct()
        .order_by(Event.date, Event.start_time)
        .all()
    )


def update_event(db: Session, slug: str, actor_user_id: str, updates: dict[str, Any]) -> Event:
    """Partial update by the host, including status changes and image_url patches."""
    event = get_event_or_404(db, slug)
    access_service.require_host(event, actor_user_id)

    for field in REQUIRED_FIELDS:
        if field in updates and updates[field] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"'{field}' cannot be null")
    if _uses_premium_fields(updates):
        access_service.require_premium(db, actor_user_id, "Custom RSVP text")
    if updates.get("slug") and updates["slug"] != event.slug:
        _check_explicit_slug(db, updates["slug"], exclude_event_id=event.event_id)
    elif "slug" in updates:
        updates.pop("slug")

    for field, value in updates.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    logger.info("Host %s updated event %s: %s", actor_user_id, event.event_id, sorted(updates))
    return event


def delete_event(db: Session, slug: str, actor_user_id: str) -> None:
    """Remove an event together with its responses and invitations (host only)."""
    event = get_event_or_404(db, slug)
    access_service.require_host(event, actor_user_id)
    event_id = event.event_id
    db.delete(event)
    db.commit()
    logger.info("Host %s deleted event %s", actor_user_id, event_id)
