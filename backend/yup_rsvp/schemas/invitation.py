"""Pydantic schemas for Invitations."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, model_validator

from yup_rsvp.models.invitation import InvitationStatus
from yup_rsvp.schemas.event import EventSummary


class InvitationRecipient(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(default=None, max_length=150)
    user_id: Optional[str] = None

    @model_validator(mode="after")
    def needs_address(self):
        if not self.email and not self.user_id:
            raise ValueError("Recipient needs an email or a user_id")
        return self


class InvitationCreate(BaseModel):
    recipients: list[InvitationRecipient] = Field(min_length=1)


class InvitationSendRequest(BaseModel):
    subject: Optional[str] = None
    message_template: Optional[str] = None
    custom_message: Optional[str] = None


class InvitationOut(BaseModel):
    invitation_id: int
    event_id: int
    user_id: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_name: Optional[str] = None
    invitation_token: str
    status: InvitationStatus
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationSendSummary(BaseModel):
    sent: int
    failed: int
    invitations: list[InvitationOut]


class InvitationPreview(BaseModel):
    event: EventSummary
    recipient_name: Optional[str] = None
    recipient_email: Optional[str] = None
    status: InvitationStatus


class LinkUserRequest(BaseModel):
    token: str
    user_id: str
