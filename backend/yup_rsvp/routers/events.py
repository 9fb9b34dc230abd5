"""Event API routes: delegates to event_service for ownership and plan checks."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.models.event import EventStatus
from yup_rsvp.schemas.event import EventCreate, EventUpdate, EventOut
from yup_rsvp.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    """Create an event; the slug is generated from the title when omitted."""
    return event_service.create_event(db, payload.model_dump())


@router.get("/", response_model=list[EventOut])
def list_events(
    host_id: Optional[str] = Query(None),
    status_filter: Optional[EventStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """List events with optional filters."""
    return event_service.list_events(db, host_id=host_id, event_status=status_filter)


@router.get("/invited", response_model=list[EventOut])
def list_invited_events(user_id: str = Query(...), db: Session = Depends(get_db)):
    """Events the user has been invited to."""
    return event_service.list_invited_events(db, user_id)


@router.get("/{slug}", response_model=EventOut)
def get_event(slug: str, db: Session = Depends(get_db)):
    """Fetch a single event by slug (or numeric id)."""
    return event_service.get_event_or_404(db, slug)


@router.put("/{slug}", response_model=EventOut)
def update_event(
    slug: str,
    payload: EventUpdate,
    actor_user_id: str = Query(..., description="ID of the user performing the update"),
    db: Session = Depends(get_db),
):
    """Update an event (host only)."""
    return event_service.update_event(db, slug, actor_user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(slug: str, actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Delete an event with its responses and invitations (host only)."""
    event_service.delete_event(db, slug, actor_user_id)
