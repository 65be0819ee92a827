"""concierge tables

Revision ID: 20251019_01
Revises:
Create Date: 2025-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20251019_01"
down_revision = None
branch_labels = None
depends_on = None


service_request_status_enum = postgresql.ENUM(
    "Pending",
    "In Progress",
    "Completed",
    name="service_request_status",
    create_type=False,
)


def upgrade() -> None:
    service_request_status_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        sa.Column("user_name", sa.String(length=255), nullable=False),
        sa.Column("room_number", sa.Integer(), nullable=True),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=False),
        sa.Column("number_of_guests", sa.Integer(), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Confirmed"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_bookings_session_id", "bookings", ["session_id"])

    op.create_table(
        "service_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        sa.Column("room_number", sa.Integer(), nullable=False),
        sa.Column("request_type", sa.String(length=128), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("status", service_request_status_enum, nullable=False, server_default="Pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_service_requests_session_id", "service_requests", ["session_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("service_name", sa.String(length=255), nullable=False),
        sa.Column("appointment_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_appointments_session_id", "appointments", ["session_id"])

    op.create_table(
        "hotel_faqs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("keywords", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
    )

    op.create_table(
        "guest_sessions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("session_id", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_guest_sessions_session_id", "guest_sessions", ["session_id"], unique=True)

    op.create_table(
        "conversation_turns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "guest_session_id",
            sa.Integer(),
            sa.ForeignKey("guest_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("parts", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("sentiment", sa.String(length=16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("guest_session_id", "position", name="uq_turn_position"),
    )
    op.create_index("ix_conversation_turns_guest_session_id", "conversation_turns", ["guest_session_id"])


def downgrade() -> None:
    op.drop_index("ix_conversation_turns_guest_session_id", table_name="conversation_turns")
    op.drop_table("conversation_turns")

    op.drop_index("ix_guest_sessions_session_id", table_name="guest_sessions")
    op.drop_table("guest_sessions")

    op.drop_table("hotel_faqs")

    op.drop_index("ix_appointments_session_id", table_name="appointments")
    op.drop_table("appointments")

    op.drop_index("ix_service_requests_session_id", table_name="service_requests")
    op.drop_table("service_requests")

    op.drop_index("ix_bookings_session_id", table_name="bookings")
    op.drop_table("bookings")

    service_request_status_enum.drop(op.get_bind(), checkfirst=True)
