"""Observation → Transaction normalization.

A :class:`RawObservation` becomes a :class:`Transaction` only when it carries
a positive amount and a date. The merchant is kept verbatim; its key
(trimmed, lower-cased) is derived by :class:`Transaction` itself via
:func:`~expense_tracker.models.normalize_merchant_key`.
"""

from __future__ import annotations

from datetime import datetime

from .models import RawObservation, Transaction, normalize_merchant_key


def validate_amount_and_date(amount: float | None, date: datetime | None) -> str | None:
    """Return a reason string when the pair is unusable, else ``None``."""

    if amount is None:
        return "amount is required"
    if amount <= 0:
        return f"amount must be positive: {amount!r}"
    if date is None:
        return "date is required"
    return None


class ObservationNormalizer:
    """Validate and clean raw observations into transaction candidates.

    Usage
    -----
    tx = ObservationNormalizer.normalize(raw)  # -> Transaction | None
    """

    @staticmethod
    def normalize(raw: RawObservation) -> Transaction | None:
        if validate_amount_and_date(raw.amount, raw.date) is not None:
            return None
        assert raw.amount is not None and raw.date is not None  # narrowed above
        return Transaction(
            amount=raw.amount,
            transaction_date=raw.date,
            merchant=raw.description,
            source=raw.source,
        )


def normalize_observation(raw: RawObservation) -> Transaction | None:
    """Module-level shorthand for :meth:`ObservationNormalizer.normalize`."""

    return ObservationNormalizer.normalize(raw)


__all__ = [
    "ObservationNormalizer",
    "normalize_observation",
    "normalize_merchant_key",
    "validate_amount_and_date",
]
