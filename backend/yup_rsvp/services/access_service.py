"""Ownership and plan checks.

Premium check sequence:
1. fast path: cached flags for the user (TTL cache, positive hits only)
2. fresh read of the user row, which also refreshes the cache
3. configured override usernames

Admins count as premium everywhere.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from cachetools import TTLCache
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from yup_rsvp.config import settings
from yup_rsvp.models.event import Event
from yup_rsvp.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserFlags:
    username: str
    is_admin: bool
    is_premium: bool
    is_pro: bool

    @property
    def has_paid_plan(self) -> bool:
        return self.is_admin or self.is_premium or self.is_pro


_flag_cache: TTLCache = TTLCache(maxsize=4096, ttl=settings.FLAG_CACHE_TTL_SECONDS)
_cache_lock = threading.Lock()


def _flags_from_row(user: User) -> UserFlags:
    return UserFlags(
        username=user.username,
        is_admin=bool(user.is_admin),
        is_premium=bool(user.is_premium),
        is_pro=bool(user.is_pro),
    )


def cache_user_flags(user: User) -> UserFlags:
    flags = _flags_from_row(user)
    with _cache_lock:
        _flag_cache[user.user_id] = flags
    return flags


def invalidate_user_flags(user_id: str) -> None:
    with _cache_lock:
        _flag_cache.pop(user_id, None)


def clear_flag_cache() -> None:
    with _cache_lock:
        _flag_cache.clear()


def load_user_flags(db: Session, user_id: str) -> Optional[UserFlags]:
    """Fresh read of the user row; refreshes the cache."""
    user = db.query(User).populate_existing().filter(User.user_id == user_id).first()
    if not user:
        return None
    return cache_user_flags(user)


def is_override_user(flags: Optional[UserFlags]) -> bool:
    return flags is not None and flags.username in settings.premium_override_usernames


def is_premium(db: Session, user_id: Optional[str]) -> bool:
    """True when the user may use premium features (branding, custom RSVP text)."""
    if not user_id:
        return False

    with _cache_lock:
        cached = _flag_cache.get(user_id)
    if cached and cached.has_paid_plan:
        return True

    flags = load_user_flags(db, user_id)
    if flags is None:
        return False
    return flags.has_paid_plan or is_override_user(flags)


def is_admin(db: Session, user_id: Optional[str]) -> bool:
    """Admin checks always read the row; plan flags may be cached, admin rights are not."""
    if not user_id:
        return False
    flags = load_user_flags(db, user_id)
    return flags is not None and (flags.is_admin or is_override_user(flags))


def require_host(event: Event, actor_user_id: str) -> None:
    """Only the event's host may mutate it."""
    if event.host_id != actor_user_id:
        logger.warning("User %s denied write access to event %s", actor_user_id, event.event_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event host may modify this event",
        )


def require_premium(db: Session, user_id: str, feature: str) -> None:
    if not is_premium(db, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"{feature} requires a premium plan",
        )


def require_admin(db: Session, actor_user_id: str) -> None:
    if not is_admin(db, actor_user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
