"""initial payment store schema

Revision ID: 0001_store
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_store"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "payment_models",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("service", sa.String(), nullable=False),
        sa.Column("store_transaction_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_models_service", "payment_models", ["service"])
    op.create_index("ix_payment_models_store_transaction_id", "payment_models", ["store_transaction_id"])


def downgrade() -> None:
    op.drop_index("ix_payment_models_store_transaction_id", table_name="payment_models")
    op.drop_index("ix_payment_models_service", table_name="payment_models")
    op.drop_table("payment_models")
