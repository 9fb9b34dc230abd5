"""Event ORM model."""
import enum
from datetime import datetime, timedelta

import pytz
from sqlalchemy import Column, String, Text, Date, Time, DateTime, Integer, Boolean, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from yup_rsvp.database import Base


class EventStatus(str, enum.Enum):
    open = "open"
    closed = "closed"
    cancelled = "cancelled"


class Event(Base):
    __tablename__ = "events"

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    timezone = Column(String(50), nullable=False, default="UTC")  # IANA tz
    location = Column(String(500), nullable=False)
    address = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(1000), nullable=True)
    host_id = Column(String(128), ForeignKey("users.user_id"), nullable=False, index=True)
    host_display_text = Column(String(255), nullable=True)
    status = Column(SAEnum(EventStatus), nullable=False, default=EventStatus.open)
    allow_guest_rsvp = Column(Boolean, nullable=False, default=True)
    allow_plus_one = Column(Boolean, nullable=False, default=True)
    max_guests_per_rsvp = Column(Integer, nullable=False, default=3)
    capacity = Column(Integer, nullable=True)
    show_rsvps_to_invitees = Column(Boolean, nullable=False, default=True)
    show_rsvps_after_threshold = Column(Boolean, nullable=False, default=False)
    rsvp_visibility_threshold = Column(Integer, nullable=False, default=5)
    use_custom_rsvp_text = Column(Boolean, nullable=False, default=False)
    custom_yes_text = Column(String(50), nullable=True)
    custom_no_text = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    responses = relationship("Response", back_populates="event", cascade="all, delete-orphan")
    invitations = relationship("Invitation", back_populates="event", cascade="all, delete-orphan")

    def ends_at_utc(self) -> datetime:
        """End of the event window as an aware UTC datetime."""
        tz = pytz.timezone(self.timezone or "UTC")
        end = datetime.combine(self.date, self.end_time)
        # An end at or before the start runs past midnight
        if self.end_time <= self.start_time:
            end += timedelta(days=1)
        local_end = tz.localize(end)
        return local_end.astimezone(pytz.utc)
