"""Heuristic receipt-text parser: OCR text → :class:`RawObservation`.

Receipt layouts vary wildly, so each field is extracted by an ordered chain of
small strategies. Every strategy is a pure function ``ReceiptText -> value |
None``; the first one returning a value wins. Order encodes confidence: for
amounts an explicit "Paid" line beats a "Total" line, which beats a regex over
the whole text, which beats a last-resort scan for the currency symbol.

The parser never raises. Text it cannot make sense of yields ``None`` fields
and the caller decides what to do with an incomplete observation.

Public surface:
- ``ReceiptTextParser.parse(text)`` / ``parse_receipt_text(text)``
- ``parse_money_token(line)`` and ``parse_date_line(line)`` for callers that
  need the same token rules (e.g., review forms).
- the strategy tuples ``AMOUNT_STRATEGIES``, ``DATE_STRATEGIES`` and
  ``MERCHANT_STRATEGIES``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from .logging_setup import get_logger
from .models import RawObservation, SourceTag

logger = get_logger(__name__)

CURRENCY_SYMBOL = "₹"

# ---------------------------------------------------------------------------
# Input view
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReceiptText:
    """Recognized text plus its non-empty lines (in order).

    Empty lines are dropped up front, so "the next line" always means the next
    line that has content.
    """

    text: str
    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> ReceiptText:
        return cls(text=text, lines=tuple(line for line in text.splitlines() if line))


type Strategy[T] = Callable[[ReceiptText], T | None]


def _first_success[T](strategies: Sequence[Strategy[T]], receipt: ReceiptText) -> T | None:
    for strategy in strategies:
        value = strategy(receipt)
        if value is not None:
            logger.debug("%s matched: %r", strategy.__name__, value)
            return value
    return None


# ---------------------------------------------------------------------------
# Amount
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"[0-9]+\.?[0-9]*")
_PAID_AMOUNT_RE = re.compile(
    r"Paid\s+" + CURRENCY_SYMBOL + r"\s*([0-9,]+\.?[0-9]*)", re.IGNORECASE
)
# Removal order matters: "Rs" goes before "Rs.", leaving a stray "." that the
# number pattern ignores.
_MONEY_NOISE = (CURRENCY_SYMBOL, ",", "Rs", "Rs.")


def _positive_float(s: str) -> float | None:
    try:
        value = float(s)
    except ValueError:
        return None
    return value if value > 0 else None


def parse_money_token(line: str) -> float | None:
    """Return the first positive number in ``line`` after stripping currency noise."""

    cleaned = line
    for noise in _MONEY_NOISE:
        cleaned = cleaned.replace(noise, "")
    match = _NUMBER_RE.search(cleaned.strip())
    if match is None:
        return None
    return _positive_float(match.group(0))


def amount_after_paid_line(receipt: ReceiptText) -> float | None:
    """A line mentioning "paid", with the amount on one of the next two lines."""

    lines = receipt.lines
    for index, line in enumerate(lines):
        if "paid" not in line.lower():
            continue
        for following in lines[index + 1 : index + 3]:
            amount = parse_money_token(following)
            if amount is not None:
                return amount
    return None


def amount_near_total_line(receipt: ReceiptText) -> float | None:
    """A "total"/"grand total" line, with the amount on it or on the next line."""

    lines = receipt.lines
    for index, line in enumerate(lines):
        lowered = line.lower()
        if "total" not in lowered and "grand total" not in lowered:
            continue
        amount = parse_money_token(line)
        if amount is not None:
            return amount
        if index + 1 < len(lines):
            amount = parse_money_token(lines[index + 1])
            if amount is not None:
                return amount
    return None


def amount_from_paid_pattern(receipt: ReceiptText) -> float | None:
    """``Paid ₹1,234.00`` anywhere in the text, possibly across a line break."""

    match = _PAID_AMOUNT_RE.search(receipt.text)
    if match is None:
        return None
    return _positive_float(match.group(1).replace(",", ""))


def amount_from_currency_line(receipt: ReceiptText) -> float | None:
    """Last line carrying the currency symbol and a usable number."""

    for line in reversed(receipt.lines):
        if CURRENCY_SYMBOL not in line:
            continue
        amount = parse_money_token(line)
        if amount is not None:
            return amount
    return None


AMOUNT_STRATEGIES: tuple[Strategy[float], ...] = (
    amount_after_paid_line,
    amount_near_total_line,
    amount_from_paid_pattern,
    amount_from_currency_line,
)

# ---------------------------------------------------------------------------
# Date
# ---------------------------------------------------------------------------

# Tried in order for every candidate string; the first format that parses the
# whole candidate wins.
DATE_FORMATS: tuple[str, ...] = (
    "%B %d, %Y",  # February 7, 2026
    "%d %B, %Y",  # 7 February, 2026
    "%B %d %Y",  # February 7 2026
    "%d %b %Y",  # 7 Feb 2026
    "%b %d, %Y",  # Feb 7, 2026
    "%d/%m/%Y",  # 07/02/2026
    "%d-%m-%Y",  # 07-02-2026
    "%d/%m/%y",  # 07/02/26
    "%d-%m-%y",  # 07-02-26
    "%Y-%m-%d",  # 2026-02-07
)

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)
_DATETIME_AT_RE = re.compile(
    rf"({_MONTHS})\s+(\d{{1,2}}),?\s+(\d{{4}})\s+at\s+(\d{{1,2}}:\d{{2}})\s*([AP]M)",
    re.IGNORECASE,
)
_DATETIME_AT_FORMAT = "%B %d, %Y at %I:%M %p"
_DATE_LABELS = ("payment date", "date")


def parse_date_line(candidate: str) -> datetime | None:
    """Parse ``candidate`` against :data:`DATE_FORMATS`; ``None`` if none fits."""

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue
    return None


def date_near_label(receipt: ReceiptText) -> datetime | None:
    """A "date"/"payment date" line, or one of the two lines after it."""

    lines = receipt.lines
    for index, line in enumerate(lines):
        lowered = line.lower()
        if not any(label in lowered for label in _DATE_LABELS):
            continue
        for nearby in lines[index : index + 3]:
            for candidate in (nearby, nearby.strip()):
                parsed = parse_date_line(candidate)
                if parsed is not None:
                    return parsed
    return None


def date_on_any_line(receipt: ReceiptText) -> datetime | None:
    """First line that is, in its entirety, a supported date."""

    for line in receipt.lines:
        parsed = parse_date_line(line.strip())
        if parsed is not None:
            return parsed
    return None


def date_from_timestamp_pattern(receipt: ReceiptText) -> datetime | None:
    """``February 7, 2026 at 3:45 PM`` anywhere in the text."""

    match = _DATETIME_AT_RE.search(receipt.text)
    if match is None:
        return None
    month, day, year, clock, meridiem = match.groups()
    try:
        return datetime.strptime(
            f"{month} {day}, {year} at {clock} {meridiem.upper()}", _DATETIME_AT_FORMAT
        )
    except ValueError:
        return None


DATE_STRATEGIES: tuple[Strategy[datetime], ...] = (
    date_near_label,
    date_on_any_line,
    date_from_timestamp_pattern,
)

# ---------------------------------------------------------------------------
# Merchant
# ---------------------------------------------------------------------------

MERCHANT_SKIP_WORDS: tuple[str, ...] = (
    "order",
    "bill",
    "receipt",
    "invoice",
    "tax",
    "gst",
    "total",
    "paid",
)
_CURRENCY_MARKERS = (CURRENCY_SYMBOL, "Rs")
_MAX_DIGIT_FRACTION = 0.3


def _looks_like_merchant(line: str) -> bool:
    if len(line) < 2:
        return False
    lowered = line.lower()
    if any(word in lowered for word in MERCHANT_SKIP_WORDS):
        return False
    if any(marker in line for marker in _CURRENCY_MARKERS):
        return False
    digits = sum(1 for ch in line if ch.isnumeric())
    return digits / len(line) <= _MAX_DIGIT_FRACTION


def merchant_from_first_plain_line(receipt: ReceiptText) -> str | None:
    """First line that is not a header keyword, an amount, or mostly digits."""

    for line in receipt.lines:
        trimmed = line.strip()
        if _looks_like_merchant(trimmed):
            return trimmed
    return None


def merchant_from_first_line(receipt: ReceiptText) -> str | None:
    """Fallback: the first line with any content, even a skip-worthy one."""

    for line in receipt.lines:
        trimmed = line.strip()
        if trimmed:
            return trimmed
    return None


MERCHANT_STRATEGIES: tuple[Strategy[str], ...] = (
    merchant_from_first_plain_line,
    merchant_from_first_line,
)

# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class ReceiptTextParser:
    """Turn raw OCR text into a best-effort observation tagged ``ocr``.

    Usage
    -----
    raw = ReceiptTextParser.parse(text)  # -> RawObservation
    """

    @staticmethod
    def parse(text: str) -> RawObservation:
        receipt = ReceiptText.from_text(text)
        observation = RawObservation(
            amount=_first_success(AMOUNT_STRATEGIES, receipt),
            date=_first_success(DATE_STRATEGIES, receipt),
            description=_first_success(MERCHANT_STRATEGIES, receipt),
            source=SourceTag.OCR,
        )
        logger.debug(
            "parsed receipt (%d lines): amount=%r date=%r merchant=%r",
            len(receipt.lines),
            observation.amount,
            observation.date,
            observation.description,
        )
        return observation


def parse_receipt_text(text: str) -> RawObservation:
    """Module-level shorthand for :meth:`ReceiptTextParser.parse`."""

    return ReceiptTextParser.parse(text)


__all__ = [
    "ReceiptText",
    "ReceiptTextParser",
    "parse_receipt_text",
    "parse_money_token",
    "parse_date_line",
    "AMOUNT_STRATEGIES",
    "DATE_STRATEGIES",
    "MERCHANT_STRATEGIES",
    "DATE_FORMATS",
    "MERCHANT_SKIP_WORDS",
    "CURRENCY_SYMBOL",
]
