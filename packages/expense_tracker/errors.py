"""Exception hierarchy for ``expense_tracker``.

Incomplete input and duplicates are not errors here; ingestion reports them
through :class:`~expense_tracker.models.IngestionResult`. Exceptions are
reserved for failures of a collaborator (storage, text recognition) and for
misuse of the explicit edit/delete operations.
"""

from __future__ import annotations

import uuid


class ExpenseTrackerError(Exception):
    """Base class for errors raised by this package."""


class StorageError(ExpenseTrackerError):
    """A read or write against the transaction store failed."""


class TransactionNotFoundError(ExpenseTrackerError, LookupError):
    def __init__(self, transaction_id: uuid.UUID) -> None:
        super().__init__(f"transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class RecognitionError(ExpenseTrackerError):
    """Text recognition failed (as opposed to recognizing no text)."""


class InvalidImageError(RecognitionError):
    """The image handed to the recognizer could not be used at all."""


__all__ = [
    "ExpenseTrackerError",
    "StorageError",
    "TransactionNotFoundError",
    "RecognitionError",
    "InvalidImageError",
]
