"""Pydantic schemas for Events."""
from __future__ import annotations
import datetime as dt
from typing import Optional

import pytz
from pydantic import BaseModel, Field, field_validator

from yup_rsvp.models.event import EventStatus


def _check_timezone(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in pytz.all_timezones_set:
        raise ValueError(f"Unknown timezone: {value}")
    return value


class EventCreate(BaseModel):
    host_id: str
    title: str = Field(min_length=1, max_length=255)
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    timezone: str = "UTC"
    location: str = Field(min_length=1, max_length=500)
    address: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    host_display_text: Optional[str] = None
    slug: Optional[str] = None  # generated from the title when omitted
    status: EventStatus = EventStatus.open
    allow_guest_rsvp: bool = True
    allow_plus_one: bool = True
    max_guests_per_rsvp: int = Field(default=3, ge=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    show_rsvps_to_invitees: bool = True
    show_rsvps_after_threshold: bool = False
    rsvp_visibility_threshold: int = Field(default=5, ge=0)
    use_custom_rsvp_text: bool = False
    custom_yes_text: Optional[str] = Field(default=None, max_length=50)
    custom_no_text: Optional[str] = Field(default=None, max_length=50)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    timezone: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=500)
    address: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    host_display_text: Optional[str] = None
    slug: Optional[str] = None
    status: Optional[EventStatus] = None
    allow_guest_rsvp: Optional[bool] = None
    allow_plus_one: Optional[bool] = None
    max_guests_per_rsvp: Optional[int] = Field(default=None, ge=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    show_rsvps_to_invitees: Optional[bool] = None
    show_rsvps_after_threshold: Optional[bool] = None
    rsvp_visibility_threshold: Optional[int] = Field(default=None, ge=0)
    use_custom_rsvp_text: Optional[bool] = None
    custom_yes_text: Optional[str] = Field(default=None, max_length=50)
    custom_no_text: Optional[str] = Field(default=None, max_length=50)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value):
        return _check_timezone(value)


class EventOut(BaseModel):
    event_id: int
    slug: str
    title: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    timezone: str
    location: str
    address: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    host_id: str
    host_display_text: Optional[str] = None
    status: EventStatus
    allow_guest_rsvp: bool
    allow_plus_one: bool
    max_guests_per_rsvp: int
    capacity: Optional[int] = None
    show_rsvps_to_invitees: bool
    show_rsvps_after_threshold: bool
    rsvp_visibility_threshold: int
    use_custom_rsvp_text: bool
    custom_yes_text: Optional[str] = None
    custom_no_text: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class EventSummary(BaseModel):
    event_id: int
    slug: str
    title: str
    date: dt.date
    start_time: dt.time
    location: str

    model_config = {"from_attributes": True}
