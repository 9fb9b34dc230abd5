"""RSVP submission and response queries.

A submission creates or overwrites the respondent's single row for the event:
registered users are keyed by (event_id, user_id), backed by a unique
constraint; guests by their email, or by name when no email is given.
The host notification runs after the write commits and cannot undo it.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from yup_rsvp.config import settings
from yup_rsvp.models.event import Event, EventStatus
from yup_rsvp.models.response import Response, ResponseType
from yup_rsvp.models.user import User
from yup_rsvp.services import invitation_service
from yup_rsvp.services.event_service import get_event_or_404
from yup_rsvp.services.notification_service import Notifier
from yup_rsvp.services.user_service import get_user_or_404

logger = logging.getLogger(__name__)


def _check_accepting(event: Event) -> None:
    if event.status != EventStatus.open:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Event is {event.status.value} and not accepting responses",
        )
    if event.ends_at_utc() < datetime.now(timezone.utc):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot RSVP to past events")


def _check_party_size(event: Event, guest_count: int) -> None:
    if guest_count < 1 or guest_count > settings.MAX_GUEST_COUNT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Guest count must be between 1 and {settings.MAX_GUEST_COUNT}",
        )
    if guest_count > 1 and not event.allow_plus_one:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This event does not allow plus-ones")
    if guest_count > event.max_guests_per_rsvp:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Maximum {event.max_guests_per_rsvp} guests allowed per RSVP",
        )


def _check_capacity(db: Session, event: Event, response_type: ResponseType, guest_count: int,
                    existing: Optional[Response]) -> None:
    """Attending parties ("yup") may not exceed the event capacity."""
    if event.capacity is None or response_type != ResponseType.yup:
        return
    query = db.query(func.coalesce(func.sum(Response.guest_count), 0)).filter(
        Response.event_id == event.event_id,
        Response.response_type == ResponseType.yup,
    )
    if existing is not None:
        query = query.filter(Response.response_id != existing.response_id)
    taken = query.scalar()
    if taken + guest_count > event.capacity:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Event is at capacity ({event.capacity - taken} spot(s) left)",
        )


def _apply(response: Response, fields: dict[str, Any]) -> None:
    for field, value in fields.items():
        setattr(response, field, value)
    response.responded_at = datetime.now(timezone.utc)


def _upsert(db: Session, existing: Optional[Response], fields: dict[str, Any],
            refetch: Callable[[], Optional[Response]]) -> tuple[Response, bool]:
    """Overwrite ``existing`` or insert a new row. Returns (response, created).

    A concurrent insert for the same respondent trips the unique constraint;
    the loser re-reads the winner's row and overwrites it instead.
    """
    if existing is not None:
        _apply(existing, fields)
        return existing, False

    response = Response(**fields)
    db.add(response)
    try:
        db.flush()
        return response, True
    except IntegrityError:
        db.rollback()
        existing = refetch()
        if existing is None:
            raise
        logger.info("Concurrent RSVP for event %s resolved as update of %s", fields["event_id"], existing.response_id)
        _apply(existing, fields)
        return existing, False


def _notify_host(db: Session, notifier: Notifier, event: Event, respondent_name: str, response: Response) -> None:
    try:
        host = db.query(User).filter(User.user_id == event.host_id).first()
        if host is None:
            return
        result = notifier.notify_host_of_rsvp(
            host.phone_number,
            host.email,
            respondent_name,
            event.title,
            response.response_type,
            response.guest_count,
        )
        logger.info(
            "Host notification for response %s: sms=%s email=%s",
            response.response_id, result.sms_sent, result.email_sent,
        )
    except Exception:
        logger.exception("Error notifying host of response %s", response.response_id)


def submit_user_response(db: Session, slug: str, user_id: str, response_type: ResponseType, guest_count: int,
                         notifier: Notifier) -> dict[str, Any]:
    """Create or overwrite a registered user's RSVP."""
    event = get_event_or_404(db, slug)
    user = get_user_or_404(db, user_id)
    if event.host_id == user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Event hosts cannot RSVP to their own events")
    _check_accepting(event)
    _check_party_size(event, guest_count)

    def refetch() -> Optional[Response]:
        return (
            db.query(Response)
            .filter(Response.event_id == event.event_id, Response.user_id == user.user_id)
            .first()
        )

    existing = refetch()
    _check_capacity(db, event, response_type, guest_count, existing)

    fields = {
        "event_id": event.event_id,
        "user_id": user.user_id,
        "response_type": response_type,
        "guest_count": guest_count,
        "is_guest": False,
    }
    response, created = _upsert(db, existing, fields, refetch)

    invitation = invitation_service.find_invitation(db, event.event_id, user_id=user.user_id, email=user.email)
    invitation_service.mark_responded(invitation)
    if invitation is not None and response.invitation_id is None:
        response.invitation_id = invitation.invitation_id

    db.commit()
    db.refresh(response)
    logger.info(
        "User %s RSVP'd '%s' (party of %d) to event %s",
        user.user_id, response.response_type.value, response.guest_count, event.event_id,
    )

    _notify_host(db, notifier, event, user.display_name, response)
    return {
        "message": "RSVP submitted successfully" if created else "RSVP updated successfully",
        "created": created,
        "response": response,
        "response_token": None,
    }


def submit_guest_response(
    db: Session,
    slug: str,
    response_type: ResponseType,
    guest_name: str,
    guest_email: Optional[str],
    guest_count: int,
    notifier: Notifier,
    invitation_token: Optional[str] = None,
) -> dict[str, Any]:
    """Create or overwrite an unauthenticated guest's RSVP."""
    event = get_event_or_404(db, slug)
    _check_accepting(event)
    if not event.allow_guest_rsvp:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Guest responses are not enabled for this event")
    _check_party_size(event, guest_count)

    guest_name = guest_name.strip()
    if not guest_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Guest name is required")
    guest_email = guest_email.strip().lower() if guest_email else None

    def refetch() -> Optional[Response]:
        query = db.query(Response).filter(Response.event_id == event.event_id, Response.is_guest.is_(True))
        if guest_email:
            query = query.filter(func.lower(Response.guest_email) == guest_email)
        else:
            query = query.filter(Response.guest_name == guest_name, Response.guest_email.is_(None))
        return query.first()

    existing = refetch()
    _check_capacity(db, event, response_type, guest_count, existing)

    fields = {
        "event_id": event.event_id,
        "user_id": None,
        "response_type": response_type,
        "guest_count": guest_count,
        "is_guest": True,
        "guest_name": guest_name,
        "guest_email": guest_email,
    }
    response, created = _upsert(db, existing, fields, refetch)
    if not response.response_token:
        response.response_token = secrets.token_urlsafe(24)

    invitation = invitation_service.find_invitation(db, event.event_id, token=invitation_token, email=guest_email)
    invitation_service.mark_responded(invitation)
    if invitation is not None and response.invitation_id is None:
        response.invitation_id = invitation.invitation_id

    db.commit()
    db.refresh(response)
    logger.info(
        "Guest '%s' RSVP'd '%s' (party of %d) to event %s",
        guest_name, response.response_type.value, response.guest_count, event.event_id,
    )

    _notify_host(db, notifier, event, guest_name, response)
    return {
        "message": "Response recorded successfully" if created else "Response updated successfully",
        "created": created,
        "response": response,
        "response_token": response.response_token,
    }


def lookup_guest_response(db: Session, slug: str, token: Optional[str] = None,
                          invitation_token: Optional[str] = None) -> dict[str, Any]:
    """Find a guest's response for editing, by response token or invitation token."""
    if not token and not invitation_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing response token or invitation token")
    event = get_event_or_404(db, slug)

    if token:
        response = (
            db.query(Response)
            .filter(Response.response_token == token, Response.event_id == event.event_id, Response.is_guest.is_(True))
            .first()
        )
        if response:
            return {"event_title": event.title, "response": response, "invitation": None}

    if invitation_token:
        invitation = invitation_service.find_invitation(db, event.event_id, token=invitation_token)
        if invitation is not None and invitation.invitation_token == invitation_token:
            invitation_service.mark_viewed(invitation)
            db.commit()
            response = db.query(Response).filter(Response.invitation_id == invitation.invitation_id).first()
            if response:
                return {"event_title": event.title, "response": response, "invitation": None}
            return {
                "event_title": event.title,
                "response": None,
                "invitation": {
                    "recipient_name": invitation.recipient_name,
                    "recipient_email": invitation.recipient_email,
                },
            }

    raise HTTPException(status_code=404, detail="Response not found")


def _responses_visible(db: Session, event: Event, viewer_id: Optional[str]) -> bool:
    if viewer_id and viewer_id == event.host_id:
        return True
    if not event.show_rsvps_to_invitees:
        return False
    if event.show_rsvps_after_threshold:
        return response_counts(db, event)["yup"] >= event.rsvp_visibility_threshold
    return True


def list_responses(db: Session, slug: str, viewer_id: Optional[str] = None) -> tuple[list[Response], bool]:
    """All responses for an event and whether the viewer is its host.

    Non-hosts are subject to the event's visibility policy.
    """
    event = get_event_or_404(db, slug)
    if not _responses_visible(db, event, viewer_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Responses are hidden for this event")
    responses = (
        db.query(Response)
        .filter(Response.event_id == event.event_id)
        .order_by(Response.responded_at, Response.response_id)
        .all()
    )
    return responses, bool(viewer_id) and viewer_id == event.host_id


def response_counts(db: Session, event: Event) -> dict[str, int]:
    rows = (
        db.query(Response.response_type, func.count(Response.response_id), func.sum(Response.guest_count))
        .filter(Response.event_id == event.event_id)
        .group_by(Response.response_type)
        .all()
    )
    counts = {"yup": 0, "nope": 0, "maybe": 0, "total_guests": 0}
    for response_type, count, guests in rows:
        counts[ResponseType(response_type).value] = count
        if response_type == ResponseType.yup:
            counts["total_guests"] = int(guests or 0)
    return counts


def get_user_response(db: Session, slug: str, user_id: str) -> Response:
    event = get_event_or_404(db, slug)
    response = (
        db.query(Response)
        .filter(Response.event_id == event.event_id, Response.user_id == user_id)
        .first()
    )
    if not response:
        raise HTTPException(status_code=404, detail="Response not found")
    return response


def delete_response(db: Session, slug: str, response_id: int, actor_user_id: str) -> None:
    """Withdraw a response. Allowed for its respondent and for the host."""
    event = get_event_or_404(db, slug)
    response = (
        db.query(Response)
        .filter(Response.response_id == response_id, Response.event_id == event.event_id)
        .first()
    )
    if not response:
        raise HTTPException(status_code=404, detail="Response not found")
    if actor_user_id not in (event.host_id, response.user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to remove this response")
    db.delete(response)
    db.commit()
    logger.info("User %s removed response %s from event %s", actor_user_id, response_id, event.event_id)
