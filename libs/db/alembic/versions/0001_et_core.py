# ruff: noqa: I001
"""Expense transactions and user profile tables.

Revision ID: 0001_et_core
Revises: None
Create Date: 2026-02-07
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_et_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "et_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("amount", sa.Double(), nullable=False),
        sa.Column("transaction_date", sa.DateTime(), nullable=False),
        sa.Column("merchant", sa.Text(), nullable=True),
        sa.Column("merchant_normalized", sa.Text(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("source in ('manual','ocr','bank')", name="ck_et_tx_source"),
    )
    # Equality on merchant key and amount, range on the transaction date
    op.create_index(
        "ix_et_tx_dedup",
        "et_transactions",
        ["merchant_normalized", "amount", "transaction_date"],
        unique=False,
    )

    op.create_table(
        "et_user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("monthly_allowance", sa.Double(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("monthly_allowance >= 0", name="ck_et_profile_allowance"),
    )


def downgrade() -> None:
    op.drop_table("et_user_profiles")
    op.drop_index("ix_et_tx_dedup", table_name="et_transactions")
    op.drop_table("et_transactions")
