"""RSVP API routes, mounted under /api/events/{slug}."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.schemas.response import (
    UserResponseSubmit, GuestResponseSubmit, ResponseOut, ResponsePublicOut, RSVPResult, ResponseCounts,
    GuestResponseLookup,
)
from yup_rsvp.services import response_service
from yup_rsvp.services.event_service import get_event_or_404
from yup_rsvp.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{slug}/responses", response_model=RSVPResult)
def submit_response(
    slug: str,
    payload: UserResponseSubmit,
    actor_user_id: str = Query(..., description="ID of the responding user"),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create or update the caller's RSVP."""
    return response_service.submit_user_response(
        db, slug, actor_user_id, payload.response_type, payload.guest_count, notifier,
    )


@router.post("/{slug}/guest-responses", response_model=RSVPResult)
def submit_guest_response(
    slug: str,
    payload: GuestResponseSubmit,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Create or update a guest RSVP; the returned response_token allows later edits."""
    return response_service.submit_guest_response(
        db,
        slug,
        response_type=payload.response_type,
        guest_name=payload.guest_name,
        guest_email=payload.guest_email,
        guest_count=payload.guest_count,
        notifier=notifier,
        invitation_token=payload.invitation_token,
    )


@router.get("/{slug}/guest-responses", response_model=GuestResponseLookup)
def get_guest_response(
    slug: str,
    token: Optional[str] = Query(None),
    inv: Optional[str] = Query(None, description="Invitation token"),
    db: Session = Depends(get_db),
):
    return response_service.lookup_guest_response(db, slug, token=token, invitation_token=inv)


@router.get("/{slug}/responses", response_model=None)
def list_responses(slug: str, viewer_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Responses for the event, subject to its visibility settings. Guest emails are shown to the host only."""
    responses, viewer_is_host = response_service.list_responses(db, slug, viewer_id)
    schema = ResponseOut if viewer_is_host else ResponsePublicOut
    return [schema.model_validate(r) for r in responses]


@router.get("/{slug}/responses/count", response_model=ResponseCounts)
def count_responses(slug: str, db: Session = Depends(get_db)):
    event = get_event_or_404(db, slug)
    return response_service.response_counts(db, event)


@router.get("/{slug}/responses/me", response_model=ResponseOut)
def my_response(slug: str, user_id: str = Query(...), db: Session = Depends(get_db)):
    return response_service.get_user_response(db, slug, user_id)


@router.delete("/{slug}/responses/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_response(slug: str, response_id: int, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    response_service.delete_response(db, slug, response_id, actor_user_id)
