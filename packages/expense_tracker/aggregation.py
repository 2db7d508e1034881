"""Monthly spend aggregation for the budget overview.

All functions are pure and recompute from the transactions they are given.
Months are calendar months in the naive local time of ``transaction_date``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .models import BudgetOverview, MonthlySpend, Transaction, UserProfile


def _month_key(dt: datetime) -> tuple[int, int]:
    return dt.year, dt.month


def _shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Return the ``(year, month)`` that is ``offset`` months before the given one."""

    index = year * 12 + (month - 1) - offset
    return index // 12, index % 12 + 1


def _monthly_totals(transactions: Iterable[Transaction]) -> dict[tuple[int, int], float]:
    totals: dict[tuple[int, int], float] = {}
    for tx in transactions:
        key = _month_key(tx.transaction_date)
        totals[key] = totals.get(key, 0.0) + tx.amount
    return totals


def current_month_total(transactions: Iterable[Transaction], now: datetime) -> float:
    """Sum of amounts dated in the same calendar month and year as ``now``."""

    target = _month_key(now)
    return sum(
        (tx.amount for tx in transactions if _month_key(tx.transaction_date) == target),
        0.0,
    )


def trailing_months(
    transactions: Iterable[Transaction], now: datetime, n: int = 3
) -> list[MonthlySpend]:
    """Totals for the last ``n`` calendar months ending with ``now``'s, oldest first.

    Months without transactions are present with a total of ``0``.
    """

    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    totals = _monthly_totals(transactions)
    result: list[MonthlySpend] = []
    for offset in reversed(range(n)):
        year, month = _shift_month(now.year, now.month, offset)
        label = datetime(year, month, 1).strftime("%b")
        result.append(MonthlySpend(month=label, total=totals.get((year, month), 0.0)))
    return result


def budget_overview(
    profile: UserProfile, transactions: Iterable[Transaction], now: datetime
) -> BudgetOverview:
    """Current-month spend against ``profile.monthly_allowance``."""

    allowance = profile.monthly_allowance
    spent = current_month_total(transactions, now)
    progress = min(spent / allowance, 1.0) if allowance > 0 else 0.0
    return BudgetOverview(
        allowance=allowance,
        spent=spent,
        remaining=allowance - spent,
        progress=progress,
    )


__all__ = [
    "current_month_total",
    "trailing_months",
    "budget_overview",
]
