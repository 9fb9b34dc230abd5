"""Invitation API routes."""
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.schemas.invitation import (
    InvitationCreate, InvitationSendRequest, InvitationOut, InvitationSendSummary, InvitationPreview,
    LinkUserRequest,
)
from yup_rsvp.services import invitation_service
from yup_rsvp.services.notification_service import Notifier, get_notifier

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/events/{slug}/invitations", response_model=list[InvitationOut], status_code=status.HTTP_201_CREATED,
)
def create_invitations(
    slug: str,
    payload: InvitationCreate,
    actor_user_id: str = Query(..., description="ID of the event host"),
    db: Session = Depends(get_db),
):
    """Create pending invitations (host only). Already-invited recipients are returned as-is."""
    recipients = [r.model_dump() for r in payload.recipients]
    return invitation_service.create_invitations(db, slug, actor_user_id, recipients)


@router.post("/events/{slug}/invitations/send", response_model=InvitationSendSummary)
def send_invitations(
    slug: str,
    payload: InvitationSendRequest,
    actor_user_id: str = Query(...),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Email every pending or previously failed invitation."""
    return invitation_service.send_invitations(
        db,
        slug,
        actor_user_id,
        notifier.email,
        subject=payload.subject,
        message_template=payload.message_template,
        custom_message=payload.custom_message,
    )


@router.get("/events/{slug}/invitations", response_model=list[InvitationOut])
def list_invitations(slug: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    return invitation_service.list_invitations(db, slug, actor_user_id)


@router.post("/invitations/link-user", response_model=InvitationOut)
def link_user(payload: LinkUserRequest, db: Session = Depends(get_db)):
    """Attach a registered account to an emailed invitation."""
    return invitation_service.link_user(db, payload.token, payload.user_id)


@router.get("/invitations/{token}", response_model=InvitationPreview)
def preview_invitation(token: str, db: Session = Depends(get_db)):
    """Invitation landing page data; marks the invitation viewed."""
    return invitation_service.preview(db, token)
