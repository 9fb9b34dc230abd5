"""Response (RSVP) ORM model."""
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from yup_rsvp.database import Base


class ResponseType(str, enum.Enum):
    yup = "yup"
    nope = "nope"
    maybe = "maybe"


class Response(Base):
    __tablename__ = "responses"
    # NULL user_id (guest rows) never collides, so guests are deduplicated in the service layer
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_responses_event_user"),)

    response_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.user_id"), nullable=True)
    response_type = Column(SAEnum(ResponseType), nullable=False)
    guest_count = Column(Integer, nullable=False, default=1)
    is_guest = Column(Boolean, nullable=False, default=False)
    guest_name = Column(String(150), nullable=True)
    guest_email = Column(String(255), nullable=True)
    response_token = Column(String(64), nullable=True, unique=True)
    invitation_id = Column(Integer, ForeignKey("invitations.invitation_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    responded_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="responses")
    invitation = relationship("Invitation")
