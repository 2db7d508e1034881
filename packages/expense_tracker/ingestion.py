"""Transaction ingestion: observation → duplicate check → store write.

``IngestionService.ingest`` is the single entry point used by manual entry,
receipt scans and (eventually) bank feeds. It never raises for bad input or
storage failures; the caller gets an :class:`IngestionResult`:

- ``INVALID``: amount or date missing, or the write failed. The caller should
  prompt for the missing fields (or retry later).
- ``DUPLICATE``: a matching transaction already exists; nothing was written.
  The caller may confirm and resubmit via :meth:`IngestionService.force_add`.
- ``SUCCESS``: the transaction was written and saved.

Concurrency: the duplicate check and the write are separate store calls with
no lock or constraint between them. Two concurrent ingestions of the same
purchase can both pass the check and both be written. Callers that need
race-free ingestion must serialize calls per merchant key themselves.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from .duplicates import DuplicateDetector
from .errors import StorageError, TransactionNotFoundError
from .logging_setup import get_logger
from .models import IngestionResult, RawObservation, Transaction
from .normalizers import validate_amount_and_date
from .persistence import TransactionStore

logger = get_logger(__name__)

# Sentinel distinguishing "leave merchant unchanged" from "clear merchant".
_UNSET: object = object()


def _candidate_from(raw: RawObservation) -> Transaction | None:
    # Only presence is checked here; positivity is the normalizer's rule.
    if raw.amount is None or raw.date is None:
        return None
    return Transaction(
        amount=raw.amount,
        transaction_date=raw.date,
        merchant=raw.description,
        source=raw.source,
    )


class IngestionService:
    """Record observations into an injected :class:`TransactionStore`."""

    def __init__(
        self,
        store: TransactionStore,
        *,
        detector: DuplicateDetector | None = None,
    ) -> None:
        self._store = store
        self._detector = detector or DuplicateDetector(store)

    @property
    def store(self) -> TransactionStore:
        return self._store

    def _write(self, candidate: Transaction) -> IngestionResult:
        try:
            self._store.insert(candidate)
            self._store.save()
        except StorageError as exc:
            logger.warning("failed to save transaction %s: %s", candidate.id, exc)
            return IngestionResult.INVALID
        logger.info(
            "recorded %s transaction %s amount=%r merchant=%r",
            candidate.source.value,
            candidate.id,
            candidate.amount,
            candidate.merchant,
        )
        return IngestionResult.SUCCESS

    def ingest(self, raw: RawObservation) -> IngestionResult:
        """Check ``raw`` for completeness and duplicates, then record it."""

        candidate = _candidate_from(raw)
        if candidate is None:
            logger.debug("observation missing amount or date: %r", raw)
            return IngestionResult.INVALID
        if self._detector.is_duplicate(candidate):
            logger.info(
                "duplicate %s transaction skipped: amount=%r merchant=%r",
                candidate.source.value,
                candidate.amount,
                candidate.merchant,
            )
            return IngestionResult.DUPLICATE
        return self._write(candidate)

    def force_add(self, raw: RawObservation) -> IngestionResult:
        """Record ``raw`` without the duplicate check (explicit "add anyway")."""

        candidate = _candidate_from(raw)
        if candidate is None:
            return IngestionResult.INVALID
        return self._write(candidate)

    def edit(
        self,
        transaction_id: uuid.UUID,
        *,
        amount: float | None = None,
        transaction_date: datetime | None = None,
        merchant: str | None | object = _UNSET,
    ) -> Transaction:
        """Apply an explicit edit to a stored transaction and save it.

        Fields left as ``None`` (or, for ``merchant``, omitted) are unchanged;
        pass ``merchant=None`` to clear the merchant. The edited values must
        satisfy the normalizer's rule (positive amount). Edits are not
        re-checked for duplicates.

        Raises ``TransactionNotFoundError`` for unknown ids, ``ValueError``
        for invalid values and ``StorageError`` when the save fails.
        """

        current = self._store.get(transaction_id)
        if current is None:
            raise TransactionNotFoundError(transaction_id)

        new_amount = current.amount if amount is None else amount
        new_date = current.transaction_date if transaction_date is None else transaction_date
        problem = validate_amount_and_date(new_amount, new_date)
        if problem is not None:
            raise ValueError(problem)

        current.amount = new_amount
        current.transaction_date = new_date
        if merchant is not _UNSET:
            current.merchant = merchant if isinstance(merchant, str) else None
        self._store.update(current)
        self._store.save()
        logger.info("edited transaction %s", transaction_id)
        return current

    def delete(self, transaction_id: uuid.UUID) -> bool:
        """Delete a stored transaction; ``False`` when it did not exist."""

        deleted = self._store.delete(transaction_id)
        if deleted:
            self._store.save()
            logger.info("deleted transaction %s", transaction_id)
        return deleted


__all__ = ["IngestionService"]
