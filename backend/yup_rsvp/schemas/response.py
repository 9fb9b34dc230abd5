"""Pydantic schemas for RSVP responses.

Request bodies accept both the camelCase keys sent by the web client
(``responseType``, ``guestCount``) and snake_case.
"""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from yup_rsvp.models.response import ResponseType


class UserResponseSubmit(BaseModel):
    response_type: ResponseType = Field(alias="responseType")
    guest_count: int = Field(default=1, ge=1, alias="guestCount")

    model_config = {"populate_by_name": True}


class GuestResponseSubmit(BaseModel):
    response_type: ResponseType = Field(alias="responseType")
    guest_name: str = Field(min_length=1, max_length=150, alias="guestName")
    guest_email: Optional[EmailStr] = Field(default=None, alias="guestEmail")
    guest_count: int = Field(default=1, ge=1, alias="guestCount")
    invitation_token: Optional[str] = Field(default=None, alias="invitationToken")

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}


class ResponsePublicOut(BaseModel):
    """What non-host viewers of the response list see: no guest email addresses."""
    response_id: int
    event_id: int
    user_id: Optional[str] = None
    response_type: ResponseType
    guest_count: int
    is_guest: bool
    guest_name: Optional[str] = None
    created_at: datetime
    responded_at: datetime

    model_config = {"from_attributes": True}


class ResponseOut(ResponsePublicOut):
    guest_email: Optional[str] = None


class RSVPResult(BaseModel):
    message: str
    created: bool
    response: ResponseOut
    response_token: Optional[str] = None


class ResponseCounts(BaseModel):
    yup: int = 0
    nope: int = 0
    maybe: int = 0
    total_guests: int = 0  # party sizes of "yup" responses


class RecipientPrefill(BaseModel):
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None


class GuestResponseLookup(BaseModel):
    event_title: str
    response: Optional[ResponseOut] = None
    invitation: Optional[RecipientPrefill] = None
