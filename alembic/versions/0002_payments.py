from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_payments"
down_revision = "0001_lifecycle_foundations"
branch_labels = None
depends_on = None

def upgrade():
    op.add_column("listings", sa.Column("payment_reference", sa.String(length=120), nullable=True))
    op.create_index("ix_listings_payment_reference", "listings", ["payment_reference"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("listing_id", sa.String(length=36), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("owner_id", sa.String(), sa.ForeignKey("owners.id"), nullable=False),
        sa.Column("reference", sa.String(length=120), nullable=False),
        sa.Column("amount_in_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="COP"),
        sa.Column("integrity_signature", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("gateway_transaction_id", sa.String(length=120), nullable=True),
        sa.Column("gateway_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("reference", name="uq_payment_reference"),
    )
    op.create_index("ix_payments_listing", "payments", ["listing_id"])

    op.create_table(
        "payment_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("transaction_id", sa.String(length=120), nullable=False),
        sa.Column("reference", sa.String(length=120), nullable=False),
        sa.Column("listing_id", sa.String(length=36), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("resulting_state", sa.String(length=30), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("transaction_id", name="uq_payment_event_transaction"),
    )

def downgrade():
    op.drop_table("payment_events")
    op.drop_index("ix_payments_listing", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_listings_payment_reference", table_name="listings")
    op.drop_column("listings", "payment_reference")
