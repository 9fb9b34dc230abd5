"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for Yup.RSVP:
users, events, invitations, responses.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

event_status = sa.Enum("open", "closed", "cancelled", name="eventstatus")
response_type = sa.Enum("yup", "nope", "maybe", name="responsetype")
invitation_status = sa.Enum("pending", "sent", "viewed", "responded", "failed", name="invitationstatus")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("is_admin", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_pro", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_premium", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("brand_primary_color", sa.String(7), nullable=True),
        sa.Column("brand_secondary_color", sa.String(7), nullable=True),
        sa.Column("brand_tertiary_color", sa.String(7), nullable=True),
        sa.Column("logo_url", sa.String(1000), nullable=True),
        sa.Column("custom_yup_text", sa.String(50), nullable=True),
        sa.Column("custom_nope_text", sa.String(50), nullable=True),
        sa.Column("custom_maybe_text", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # --- events ---
    op.create_table(
        "events",
        sa.Column("event_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("start_time", sa.Time, nullable=False),
        sa.Column("end_time", sa.Time, nullable=False),
        sa.Column("timezone", sa.String(50), nullable=False, server_default="UTC"),
        sa.Column("location", sa.String(500), nullable=False),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(1000), nullable=True),
        sa.Column("host_id", sa.String(128), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("host_display_text", sa.String(255), nullable=True),
        sa.Column("status", event_status, nullable=False, server_default="open"),
        sa.Column("allow_guest_rsvp", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("allow_plus_one", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("max_guests_per_rsvp", sa.Integer, nullable=False, server_default="3"),
        sa.Column("capacity", sa.Integer, nullable=True),
        sa.Column("show_rsvps_to_invitees", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("show_rsvps_after_threshold", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("rsvp_visibility_threshold", sa.Integer, nullable=False, server_default="5"),
        sa.Column("use_custom_rsvp_text", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("custom_yes_text", sa.String(50), nullable=True),
        sa.Column("custom_no_text", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_slug", "events", ["slug"], unique=True)
    op.create_index("ix_events_host_id", "events", ["host_id"])

    # --- invitations ---
    op.create_table(
        "invitations",
        sa.Column("invitation_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("recipient_email", sa.String(255), nullable=True),
        sa.Column("recipient_name", sa.String(150), nullable=True),
        sa.Column("invitation_token", sa.String(64), nullable=False, unique=True),
        sa.Column("status", invitation_status, nullable=False, server_default="pending"),
        sa.Column("email_message_id", sa.String(255), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_invitations_event_id", "invitations", ["event_id"])
    op.create_index("ix_invitations_user_id", "invitations", ["user_id"])

    # --- responses ---
    op.create_table(
        "responses",
        sa.Column("response_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer, sa.ForeignKey("events.event_id"), nullable=False),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("response_type", response_type, nullable=False),
        sa.Column("guest_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("is_guest", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("guest_name", sa.String(150), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("response_token", sa.String(64), nullable=True, unique=True),
        sa.Column("invitation_id", sa.Integer, sa.ForeignKey("invitations.invitation_id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("responded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_responses_event_user"),
    )
    op.create_index("ix_responses_event_id", "responses", ["event_id"])


def downgrade() -> None:
    op.drop_table("responses")
    op.drop_table("invitations")
    op.drop_table("events")
    op.drop_table("users")
    bind = op.get_bind()
    invitation_status.drop(bind, checkfirst=True)
    response_type.drop(bind, checkfirst=True)
    event_status.drop(bind, checkfirst=True)
