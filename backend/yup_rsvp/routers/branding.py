"""Premium-gated branding settings page."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from yup_rsvp.database import get_db
from yup_rsvp.schemas.user import BrandingOut
from yup_rsvp.services import access_service, user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/branding", response_model=BrandingOut)
def branding_settings(user_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Signed-out callers go to login, non-premium callers to the upgrade page."""
    if not user_id:
        return RedirectResponse("/login?redirect=branding", status_code=status.HTTP_303_SEE_OTHER)
    if not access_service.is_premium(db, user_id):
        logger.info("User %s redirected from branding to upgrade", user_id)
        return RedirectResponse("/upgrade", status_code=status.HTTP_303_SEE_OTHER)
    return user_service.get_user_or_404(db, user_id)
