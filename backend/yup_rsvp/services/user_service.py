"""User profile, branding and plan-flag operations."""
import logging
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from yup_rsvp.models.event import Event
from yup_rsvp.models.response import Response
from yup_rsvp.models.user import User
from yup_rsvp.services import access_service

logger = logging.getLogger(__name__)


def get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def create_user(db: Session, fields: dict[str, Any]) -> User:
    """Create a user on signup/OAuth callback. Usernames and explicit ids are unique."""
    if db.query(User).filter(User.username == fields["username"]).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is already taken")
    if fields.get("user_id") and db.query(User).filter(User.user_id == fields["user_id"]).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")
    if not fields.get("user_id"):
        fields.pop("user_id", None)

    user = User(**fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.username)
    return user


def update_user(db: Session, user_id: str, updates: dict[str, Any]) -> User:
    user = get_user_or_404(db, user_id)
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated user %s", user_id)
    return user


def update_branding(db: Session, user_id: str, updates: dict[str, Any]) -> User:
    """Custom branding is a premium feature."""
    user = get_user_or_404(db, user_id)
    access_service.require_premium(db, user_id, "Custom branding")
    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info("Updated branding for user %s: %s", user_id, sorted(updates))
    return user


def set_flags(db: Session, actor_user_id: str, user_id: str, flags: dict[str, bool]) -> User:
    """Toggle admin/premium/pro on a user (admin only)."""
    access_service.require_admin(db, actor_user_id)
    user = get_user_or_404(db, user_id)
    for field, value in flags.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    access_service.invalidate_user_flags(user_id)
    logger.info("User %s set flags %s on user %s", actor_user_id, flags, user_id)
    return user


def bootstrap_admin(db: Session, actor_user_id: str) -> User:
    """Make the caller an admin. Allowed only while no admin exists, or for override usernames."""
    user = get_user_or_404(db, actor_user_id)
    has_admin = db.query(User).filter(User.is_admin.is_(True)).first() is not None
    flags = access_service.load_user_flags(db, actor_user_id)
    if has_admin and not access_service.is_override_user(flags):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Failed to set admin status")

    user.is_admin = True
    db.commit()
    db.refresh(user)
    access_service.invalidate_user_flags(actor_user_id)
    logger.info("User %s granted admin status", actor_user_id)
    return user


def counts(db: Session) -> dict[str, int]:
    return {
        "users": db.query(User).count(),
        "events": db.query(Event).count(),
        "responses": db.query(Response).count(),
    }
