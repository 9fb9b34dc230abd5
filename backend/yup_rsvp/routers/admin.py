"""Admin API routes: plan flags and the first-admin bootstrap."""
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.schemas.user import UserFlagsUpdate, UserOut
from yup_rsvp.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.patch("/users/{user_id}/flags", response_model=UserOut)
def set_user_flags(
    user_id: str,
    payload: UserFlagsUpdate,
    actor_user_id: str = Query(..., description="ID of the admin making the change"),
    db: Session = Depends(get_db),
):
    """Toggle is_admin / is_premium / is_pro on a user."""
    return user_service.set_flags(db, actor_user_id, user_id, payload.model_dump(exclude_none=True))


@router.post("/set-admin", response_model=UserOut)
def set_admin(actor_user_id: str = Query(...), db: Session = Depends(get_db)):
    """Grant the caller admin rights while the system has no admin yet."""
    return user_service.bootstrap_admin(db, actor_user_id)
