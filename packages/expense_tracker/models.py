"""Data models for ``expense_tracker``.

Two kinds of records live here:

- plain dataclasses for the values that flow through the ingestion pipeline
  (:class:`RawObservation`, :class:`Transaction`, :class:`MonthlySpend`,
  :class:`BudgetOverview`);
- a pydantic model for the user-edited profile record, which is validated at
  the boundary where it is entered (:class:`UserProfile`).

Amounts are plain ``float`` values in a single, unspecified currency.
Datetimes are naive local wall-clock values; receipt text never carries a
zone, so the pipeline does not invent one.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SourceTag(StrEnum):
    """Provenance of a transaction; also selects the duplicate window."""

    MANUAL = "manual"
    OCR = "ocr"
    BANK = "bank"

    @property
    def display_name(self) -> str:
        return _SOURCE_DISPLAY_NAMES[self]


_SOURCE_DISPLAY_NAMES: dict[SourceTag, str] = {
    SourceTag.MANUAL: "Manual",
    SourceTag.OCR: "OCR",
    SourceTag.BANK: "Bank",
}


class IngestionResult(StrEnum):
    """Outcome of a single ingestion call."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    INVALID = "invalid"


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawObservation:
    """An unvalidated candidate transaction, fresh from parsing or manual entry.

    Any field may be missing. Observations are never persisted as-is; they are
    turned into :class:`Transaction` values by normalization or ingestion.
    """

    amount: float | None
    date: datetime | None
    description: str | None
    source: SourceTag


def normalize_merchant_key(merchant: str | None) -> str | None:
    """Return the merchant key: ``merchant`` trimmed and lower-cased.

    ``None`` stays ``None``. Whitespace includes newlines.
    """

    if merchant is None:
        return None
    return merchant.strip().lower()


@dataclass(slots=True)
class Transaction:
    """A recorded expense.

    ``id`` and ``source`` are fixed for the lifetime of the record; amount,
    date and merchant change only through an explicit edit. The merchant key
    is derived on read so it can never drift from ``merchant``.
    """

    amount: float
    transaction_date: datetime
    merchant: str | None = None
    source: SourceTag = SourceTag.MANUAL
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def merchant_normalized(self) -> str | None:
        return normalize_merchant_key(self.merchant)


@dataclass(frozen=True, slots=True)
class MonthlySpend:
    """Total spent in one calendar month, labeled with the short month name."""

    month: str
    total: float


@dataclass(frozen=True, slots=True)
class BudgetOverview:
    """Current-month spend measured against the profile's allowance.

    ``remaining`` goes negative when the allowance is exceeded; ``progress``
    is clamped to ``[0, 1]`` and is ``0`` when no allowance is set.
    """

    allowance: float
    spent: float
    remaining: float
    progress: float


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    """The (single) user profile: display name and monthly allowance."""

    model_config = ConfigDict(strict=True, extra="forbid", str_strip_whitespace=True)

    name: str
    monthly_allowance: float

    @field_validator("monthly_allowance", mode="before")
    @classmethod
    def _allowance_as_float(cls, v: object) -> object:
        # Accept ints from forms/CLI without relaxing strict mode elsewhere.
        if isinstance(v, int) and not isinstance(v, bool):
            return float(v)
        return v

    @field_validator("monthly_allowance")
    @classmethod
    def _allowance_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("monthly_allowance must be >= 0")
        return v


__all__ = [
    "SourceTag",
    "IngestionResult",
    "RawObservation",
    "Transaction",
    "MonthlySpend",
    "BudgetOverview",
    "UserProfile",
    "normalize_merchant_key",
]
