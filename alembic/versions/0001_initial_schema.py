"""initial booking and payment schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_STATUSES = ("REQUIRES_PAYMENT_METHOD", "PROCESSING", "SUCCEEDED", "CANCELLED")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(150), nullable=True),
        sa.Column("email", sa.String(150), nullable=False),
        sa.Column("role", sa.Enum("EXPLORER", "ORGANIZER", "ADMIN", name="userrole"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "experiences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(200), nullable=True, unique=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(10), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("meeting_address", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "experience_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("experience_id", sa.Integer(), sa.ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False),
        sa.Column("start_at", sa.DateTime(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("price_override", sa.Float(), nullable=True),
        sa.Column("location_label", sa.String(255), nullable=True),
        sa.Column("meeting_address", sa.String(255), nullable=True),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("explorer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("experience_id", sa.Integer(), sa.ForeignKey("experiences.id"), nullable=False),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("experience_sessions.id"), nullable=False),
        sa.Column("guests", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("status", sa.Enum("PENDING", "CONFIRMED", "CANCELLED", name="bookingstatus"), nullable=False),
        sa.Column("payment_status", sa.Enum(*PAYMENT_STATUSES, name="paymentstatus"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("payment_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_bookings_explorer_id", "bookings", ["explorer_id"])
    op.create_index("ix_bookings_experience_id", "bookings", ["experience_id"])
    op.create_index("ix_bookings_session_id", "bookings", ["session_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_expires_at", "bookings", ["expires_at"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(10), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(*PAYMENT_STATUSES, name="paymentstatus", create_type=False),
            nullable=False,
        ),
        sa.Column("provider_payment_id", sa.String(255), nullable=True),
        sa.Column("captured_at", sa.DateTime(), nullable=True),
        sa.Column("error_code", sa.String(100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])
    op.create_index("ix_payments_provider_payment_id", "payments", ["provider_payment_id"])

    op.create_table(
        "refunds",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(255), nullable=True),
        sa.Column("status", sa.Enum("PENDING", "SUCCEEDED", "FAILED", name="refundstatus"), nullable=False),
        sa.Column("provider_refund_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_refunds_payment_id", "refunds", ["payment_id"])

    op.create_table(
        "payment_gateways",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.Enum("CARD", "CASH", "PAYPAL", name="gatewaytype"), nullable=False),
        sa.Column("config", sa.JSON(), nullable=True),
        sa.Column("test_mode", sa.Boolean(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payment_gateways_key", "payment_gateways", ["key"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.Enum("VALID", "USED", "CANCELLED", name="ticketstatus"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("experience_id", sa.Integer(), sa.ForeignKey("experiences.id"), nullable=False),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("experience_sessions.id"), nullable=False),
        sa.Column("explorer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("booking_id", "seat_number", name="uq_ticket_booking_seat"),
    )
    op.create_index("ix_tickets_code", "tickets", ["code"], unique=True)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=True),
        sa.Column("channels", sa.JSON(), nullable=False),
        sa.Column("href", sa.String(255), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("toast_enabled", sa.Boolean(), nullable=False),
        sa.Column("email_enabled", sa.Boolean(), nullable=False),
        sa.Column("on_booking_created", sa.Boolean(), nullable=False),
        sa.Column("on_booking_confirmed", sa.Boolean(), nullable=False),
        sa.Column("on_booking_cancelled", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "email_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("smtp_host", sa.String(255), nullable=False),
        sa.Column("smtp_port", sa.Integer(), nullable=False),
        sa.Column("smtp_user", sa.String(255), nullable=True),
        sa.Column("smtp_pass", sa.Text(), nullable=True),
        sa.Column("secure", sa.Boolean(), nullable=False),
        sa.Column("from_name", sa.String(150), nullable=True),
        sa.Column("from_email", sa.String(150), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "email_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("html", sa.Text(), nullable=True),
        sa.Column("text", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_email_templates_key", "email_templates", ["key"], unique=True)


def downgrade():
    op.drop_table("email_templates")
    op.drop_table("email_settings")
    op.drop_table("notification_preferences")
    op.drop_table("notifications")
    op.drop_table("tickets")
    op.drop_table("payment_gateways")
    op.drop_table("refunds")
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("experience_sessions")
    op.drop_table("experiences")
    op.drop_table("users")
    for name in ("ticketstatus", "gatewaytype", "refundstatus", "paymentstatus", "bookingstatus", "userrole"):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
