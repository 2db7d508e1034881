"""Public interface for the ``expense_tracker`` package.

This module exposes the ingestion pipeline, aggregation helpers and public
models as the stable import surface. There is no runtime logic here, only
symbol re-exports.
"""

from .aggregation import budget_overview, current_month_total, trailing_months
from .duplicates import DuplicateDetector, dedup_window
from .errors import (
    ExpenseTrackerError,
    InvalidImageError,
    RecognitionError,
    StorageError,
    TransactionNotFoundError,
)
from .ingestion import IngestionService
from .models import (
    BudgetOverview,
    IngestionResult,
    MonthlySpend,
    RawObservation,
    SourceTag,
    Transaction,
    UserProfile,
    normalize_merchant_key,
)
from .normalizers import ObservationNormalizer, normalize_observation
from .persistence import SqlTransactionStore, TransactionStore
from .receipt_parser import ReceiptTextParser, parse_receipt_text
from .recognition import TextRecognizer, scan_receipt

__all__ = [
    # Pipeline
    "ReceiptTextParser",
    "parse_receipt_text",
    "ObservationNormalizer",
    "normalize_observation",
    "normalize_merchant_key",
    "DuplicateDetector",
    "dedup_window",
    "IngestionService",
    "TextRecognizer",
    "scan_receipt",
    # Aggregation
    "current_month_total",
    "trailing_months",
    "budget_overview",
    # Storage
    "TransactionStore",
    "SqlTransactionStore",
    # Models / types
    "SourceTag",
    "IngestionResult",
    "RawObservation",
    "Transaction",
    "MonthlySpend",
    "BudgetOverview",
    "UserProfile",
    # Errors
    "ExpenseTrackerError",
    "StorageError",
    "TransactionNotFoundError",
    "RecognitionError",
    "InvalidImageError",
]
