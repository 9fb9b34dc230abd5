"""User API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.models.user import User
from yup_rsvp.schemas.user import UserCreate, UserUpdate, UserOut, BrandingUpdate, BrandingOut, CountsOut
from yup_rsvp.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a user (called on signup / auth callback)."""
    return user_service.create_user(db, payload.model_dump())


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.created_at).all()


@router.get("/count", response_model=CountsOut)
def get_counts(db: Session = Depends(get_db)):
    """Totals of users, events and responses."""
    return user_service.counts(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return user_service.get_user_or_404(db, user_id)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    """Profile edits (partial update)."""
    return user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))


@router.put("/{user_id}/branding", response_model=BrandingOut)
def update_branding(user_id: str, payload: BrandingUpdate, db: Session = Depends(get_db)):
    """Save colors, logo and RSVP wording (premium only)."""
    return user_service.update_branding(db, user_id, payload.model_dump(exclude_unset=True))
