from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Double,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: et_transactions
# ---------------------------


class EtTransaction(Base):
    __tablename__ = "et_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Stored as a double so duplicate matching keeps exact equality on the
    # same values the application compares in memory.
    amount: Mapped[float] = mapped_column(Double, nullable=False)
    transaction_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    merchant: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Trimmed, lower-cased ``merchant``; NULL iff ``merchant`` is NULL.
    #
    # Written by the application (``Transaction.merchant_normalized``) rather
    # than as a generated column: Python's ``str.strip()`` covers Unicode
    # whitespace, which neither SQLite's TRIM nor Postgres' BTRIM match
    # without an explicit character list.
    merchant_normalized: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "source in ('manual','ocr','bank')",
            name="ck_et_tx_source",
        ),
        # Supports the duplicate lookup: equality on amount/merchant key plus
        # a range on the transaction date.
        Index(
            "ix_et_tx_dedup",
            "merchant_normalized",
            "amount",
            "transaction_date",
        ),
    )


# ---------------------------
# Profile: et_user_profiles
# ---------------------------


class EtUserProfile(Base):
    __tablename__ = "et_user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    monthly_allowance: Mapped[float] = mapped_column(Double, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "monthly_allowance >= 0",
            name="ck_et_profile_allowance",
        ),
    )


__all__ = [
    "Base",
    "EtTransaction",
    "EtUserProfile",
]
