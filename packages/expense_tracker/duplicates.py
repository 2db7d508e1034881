"""Duplicate lookup for transaction candidates.

A candidate is a duplicate when the store already holds a transaction with
the same amount and the same merchant key whose date lies within a
source-dependent window around the candidate's date.

Public surface:
- ``dedup_window``: the window for a :class:`SourceTag`.
- ``DuplicateDetector``: runs the lookup against an injected store.

Matching is exact on both amount and merchant key. Near misses (a cent of
float drift, "Starbucks" vs "Starbucks Coffee") are not duplicates.
"""

from __future__ import annotations

from datetime import timedelta

from .errors import StorageError
from .logging_setup import get_logger
from .models import SourceTag, Transaction
from .persistence import TransactionStore

logger = get_logger(__name__)

# Receipts get scanned more than once over a few minutes; bank feeds carry
# precise timestamps.
_DEDUP_WINDOWS: dict[SourceTag, timedelta] = {
    SourceTag.OCR: timedelta(minutes=10),
    SourceTag.MANUAL: timedelta(minutes=3),
    SourceTag.BANK: timedelta(minutes=1),
}


def dedup_window(source: SourceTag) -> timedelta:
    """Half-width of the duplicate window for ``source`` (inclusive bounds)."""

    return _DEDUP_WINDOWS[source]


class DuplicateDetector:
    """Answer "is this candidate already recorded?" against a store."""

    def __init__(self, store: TransactionStore) -> None:
        self._store = store

    def find_matches(self, candidate: Transaction) -> list[Transaction]:
        """Return stored transactions matching ``candidate``.

        Raises :class:`StorageError` when the store cannot be queried. A
        candidate without a merchant key never matches anything.
        """

        key = candidate.merchant_normalized
        if key is None:
            return []
        window = dedup_window(candidate.source)
        return list(
            self._store.query(
                amount_equals=candidate.amount,
                date_from=candidate.transaction_date - window,
                date_to=candidate.transaction_date + window,
                merchant_normalized_equals=key,
            )
        )

    def is_duplicate(self, candidate: Transaction) -> bool:
        """``True`` iff at least one stored transaction matches ``candidate``.

        Lookup failures are logged and reported as "not a duplicate" so that
        a flaky read never blocks recording an expense.
        """

        if candidate.merchant_normalized is None:
            logger.debug("no merchant key; skipping duplicate check for %s", candidate.id)
            return False
        try:
            matches = self.find_matches(candidate)
        except StorageError as exc:
            logger.warning("duplicate check failed, treating as new: %s", exc)
            return False
        logger.debug(
            "duplicate check key=%r amount=%r date=%s window=%s matches=%d",
            candidate.merchant_normalized,
            candidate.amount,
            candidate.transaction_date.isoformat(),
            dedup_window(candidate.source),
            len(matches),
        )
        return bool(matches)


__all__ = [
    "DuplicateDetector",
    "dedup_window",
]
