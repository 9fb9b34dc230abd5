"""Invitation ORM model with one canonical status enumeration."""
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from yup_rsvp.database import Base


class InvitationStatus(str, enum.Enum):
    pending = "pending"
    sent = "sent"
    viewed = "viewed"
    responded = "responded"
    failed = "failed"


class Invitation(Base):
    __tablename__ = "invitations"

    invitation_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.user_id"), nullable=True, index=True)
    recipient_email = Column(String(255), nullable=True)
    recipient_name = Column(String(150), nullable=True)
    invitation_token = Column(String(64), nullable=False, unique=True)
    status = Column(SAEnum(InvitationStatus), nullable=False, default=InvitationStatus.pending)
    email_message_id = Column(String(255), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="invitations")
