"""User ORM model: identity, plan flags and branding."""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from yup_rsvp.database import Base


class User(Base):
    __tablename__ = "users"

    # String ids so externally issued auth ids (Firebase, Supabase) fit as-is
    user_id = Column(String(128), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone_number = Column(String(32), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_pro = Column(Boolean, nullable=False, default=False)
    is_premium = Column(Boolean, nullable=False, default=False)
    brand_primary_color = Column(String(7), nullable=True)
    brand_secondary_color = Column(String(7), nullable=True)
    brand_tertiary_color = Column(String(7), nullable=True)
    logo_url = Column(String(1000), nullable=True)
    custom_yup_text = Column(String(50), nullable=True)
    custom_nope_text = Column(String(50), nullable=True)
    custom_maybe_text = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
