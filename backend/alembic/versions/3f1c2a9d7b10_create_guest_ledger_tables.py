"""create guest ledger tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Guests (VIP + regular, one table) and role config
    # -----------------------------------------------------
    op.create_table(
        "guests",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("guest_type", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("referrer", sa.String(length=64), nullable=True),
        sa.Column("secondary_info", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_guests_type_role", "guests", ["guest_type", "role"])

    op.create_table(
        "role_configurations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("guest_type", sa.String(length=16), nullable=False),
        sa.Column("sponsorship_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("referral_quota", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_role_configurations_name", "role_configurations", ["name"], unique=True)

    # -----------------------------------------------------
    # 2) Sponsorship ledger
    # -----------------------------------------------------
    op.create_table(
        "guest_revenue",
        sa.Column(
            "guest_id",
            sa.String(length=64),
            sa.ForeignKey("guests.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("sponsorship", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("payment_source", sa.String(length=50), nullable=True),
        sa.Column("is_upsaled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "guest_upsale_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "guest_id",
            sa.String(length=64),
            sa.ForeignKey("guests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_role", sa.String(length=100), nullable=True),
        sa.Column("to_role", sa.String(length=100), nullable=True),
        sa.Column("from_sponsorship", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("to_sponsorship", sa.Numeric(14, 2), nullable=False),
        sa.Column("from_payment_source", sa.String(length=50), nullable=True),
        sa.Column("to_payment_source", sa.String(length=50), nullable=True),
        sa.Column("upsaled_by", sa.String(length=200), nullable=True),
        sa.Column("bill_image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(
        "ix_guest_upsale_history_guest_created",
        "guest_upsale_history",
        ["guest_id", "created_at"],
    )

    op.create_table(
        "guest_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "guest_id",
            sa.String(length=64),
            sa.ForeignKey("guests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_guest_payments_guest_created", "guest_payments", ["guest_id", "created_at"])

    # -----------------------------------------------------
    # 3) Services and service sales
    # -----------------------------------------------------
    op.create_table(
        "services",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("statuses", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("allow_free_trial", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "guest_services",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "guest_id",
            sa.String(length=64),
            sa.ForeignKey("guests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "service_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("services.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("price", sa.Numeric(14, 2), nullable=False),
        sa.Column("paid_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("referrer_id", sa.String(length=64), nullable=True),
        sa.Column("referrer_type", sa.String(length=16), nullable=True),
        sa.Column("is_free_trial", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_guest_services_guest_id", "guest_services", ["guest_id"])

    op.create_table(
        "service_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "guest_service_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("guest_services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("bill_image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_service_payments_guest_service_id", "service_payments", ["guest_service_id"])


def downgrade() -> None:
    op.drop_index("ix_service_payments_guest_service_id", table_name="service_payments")
    op.drop_table("service_payments")
    op.drop_index("ix_guest_services_guest_id", table_name="guest_services")
    op.drop_table("guest_services")
    op.drop_table("services")
    op.drop_index("ix_guest_payments_guest_created", table_name="guest_payments")
    op.drop_table("guest_payments")
    op.drop_index("ix_guest_upsale_history_guest_created", table_name="guest_upsale_history")
    op.drop_table("guest_upsale_history")
    op.drop_table("guest_revenue")
    op.drop_index("ix_role_configurations_name", table_name="role_configurations")
    op.drop_table("role_configurations")
    op.drop_index("ix_guests_type_role", table_name="guests")
    op.drop_table("guests")
