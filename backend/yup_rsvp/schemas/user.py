"""Pydantic schemas for Users, branding and plan flags."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"


class UserCreate(BaseModel):
    user_id: Optional[str] = None  # external auth id, generated when omitted
    username: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    username: str
    display_name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    is_admin: bool
    is_pro: bool
    is_premium: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class BrandingUpdate(BaseModel):
    brand_primary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    brand_secondary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    brand_tertiary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    logo_url: Optional[str] = None
    custom_yup_text: Optional[str] = Field(default=None, max_length=50)
    custom_nope_text: Optional[str] = Field(default=None, max_length=50)
    custom_maybe_text: Optional[str] = Field(default=None, max_length=50)


class BrandingOut(BaseModel):
    user_id: str
    brand_primary_color: Optional[str] = None
    brand_secondary_color: Optional[str] = None
    brand_tertiary_color: Optional[str] = None
    logo_url: Optional[str] = None
    custom_yup_text: Optional[str] = None
    custom_nope_text: Optional[str] = None
    custom_maybe_text: Optional[str] = None

    model_config = {"from_attributes": True}


class UserFlagsUpdate(BaseModel):
    is_admin: Optional[bool] = None
    is_premium: Optional[bool] = None
    is_pro: Optional[bool] = None


class CountsOut(BaseModel):
    users: int
    events: int
    responses: int
