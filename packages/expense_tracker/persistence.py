# ruff: noqa: I001
"""Persistence integration for expense_tracker.

The ingestion core never talks to a database directly. It depends on the
:class:`TransactionStore` protocol below and receives a store instance from
its caller. :class:`SqlTransactionStore` implements the protocol over a
SQLAlchemy ``Session`` bound to the ORM models in ``db.models.expenses``.

Scope:
- Insert, query, update and delete rows in ``et_transactions``.
- Read and upsert the singleton-like profile in ``et_user_profiles``.

Writes are staged on the session by ``insert``/``update``/``delete`` and made
durable by ``save``. Every SQLAlchemy failure is rolled back and re-raised as
:class:`~expense_tracker.errors.StorageError`.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.expenses import EtTransaction, EtUserProfile
from .errors import StorageError, TransactionNotFoundError
from .logging_setup import get_logger
from .models import SourceTag, Transaction, UserProfile

logger = get_logger(__name__)

_T = TypeVar("_T")


class TransactionStore(Protocol):
    """Storage shape the ingestion core depends on."""

    def insert(self, transaction: Transaction) -> None: ...

    def save(self) -> None: ...

    def query(
        self,
        *,
        amount_equals: float,
        date_from: datetime,
        date_to: datetime,
        merchant_normalized_equals: str,
    ) -> Sequence[Transaction]: ...

    def get(self, transaction_id: uuid.UUID) -> Transaction | None: ...

    def list_transactions(self) -> Sequence[Transaction]: ...

    def update(self, transaction: Transaction) -> None: ...

    def delete(self, transaction_id: uuid.UUID) -> bool: ...

    def get_profile(self) -> UserProfile | None: ...

    def save_profile(self, profile: UserProfile) -> None: ...


# ---------------------------------------------------------------------------
# Row <-> domain mapping
# ---------------------------------------------------------------------------


def _to_row(tx: Transaction) -> EtTransaction:
    return EtTransaction(
        id=tx.id,
        amount=tx.amount,
        transaction_date=tx.transaction_date,
        merchant=tx.merchant,
        merchant_normalized=tx.merchant_normalized,
        source=tx.source.value,
        created_at=tx.created_at,
    )


def _from_row(row: EtTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        amount=row.amount,
        transaction_date=row.transaction_date,
        merchant=row.merchant,
        source=SourceTag(row.source),
        created_at=row.created_at,
    )


class SqlTransactionStore:
    """:class:`TransactionStore` backed by a SQLAlchemy session.

    The session's lifecycle (creation, close) belongs to the caller, e.g.
    ``db.client.session_scope``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def _guard(self, op: str, fn: Callable[[], _T]) -> _T:
        try:
            return fn()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.warning("store %s failed: %s", op, exc)
            raise StorageError(f"{op} failed: {exc}") from exc

    # ---- transactions ------------------------------------------------------

    def insert(self, transaction: Transaction) -> None:
        self._guard("insert", lambda: self._session.add(_to_row(transaction)))

    def save(self) -> None:
        self._guard("save", self._session.commit)

    def query(
        self,
        *,
        amount_equals: float,
        date_from: datetime,
        date_to: datetime,
        merchant_normalized_equals: str,
    ) -> list[Transaction]:
        stmt = select(EtTransaction).where(
            EtTransaction.amount == amount_equals,
            EtTransaction.transaction_date >= date_from,
            EtTransaction.transaction_date <= date_to,
            EtTransaction.merchant_normalized == merchant_normalized_equals,
        )
        rows = self._guard("query", lambda: self._session.scalars(stmt).all())
        return [_from_row(r) for r in rows]

    def get(self, transaction_id: uuid.UUID) -> Transaction | None:
        row = self._guard("get", lambda: self._session.get(EtTransaction, transaction_id))
        return _from_row(row) if row is not None else None

    def list_transactions(self) -> list[Transaction]:
        stmt = select(EtTransaction).order_by(
            EtTransaction.transaction_date.desc(), EtTransaction.created_at.desc()
        )
        rows = self._guard("list", lambda: self._session.scalars(stmt).all())
        return [_from_row(r) for r in rows]

    def update(self, transaction: Transaction) -> None:
        def _apply() -> None:
            row = self._session.get(EtTransaction, transaction.id)
            if row is None:
                raise TransactionNotFoundError(transaction.id)
            row.amount = transaction.amount
            row.transaction_date = transaction.transaction_date
            row.merchant = transaction.merchant
            row.merchant_normalized = transaction.merchant_normalized

        self._guard("update", _apply)

    def delete(self, transaction_id: uuid.UUID) -> bool:
        stmt = delete(EtTransaction).where(EtTransaction.id == transaction_id)
        result = self._guard("delete", lambda: self._session.execute(stmt))
        return bool(result.rowcount)

    # ---- profile -----------------------------------------------------------

    def _first_profile_row(self) -> EtUserProfile | None:
        stmt = select(EtUserProfile).order_by(EtUserProfile.id).limit(1)
        return self._session.scalars(stmt).first()

    def get_profile(self) -> UserProfile | None:
        row = self._guard("get_profile", self._first_profile_row)
        if row is None:
            return None
        return UserProfile(name=row.name, monthly_allowance=row.monthly_allowance)

    def save_profile(self, profile: UserProfile) -> None:
        """Upsert the first profile record; the caller commits via ``save``."""

        def _apply() -> None:
            now = datetime.now()
            row = self._first_profile_row()
            if row is None:
                self._session.add(
                    EtUserProfile(
                        name=profile.name,
                        monthly_allowance=profile.monthly_allowance,
                        created_at=now,
                        updated_at=now,
                    )
                )
                return
            row.name = profile.name
            row.monthly_allowance = profile.monthly_allowance
            row.updated_at = now

        self._guard("save_profile", _apply)


__all__ = [
    "TransactionStore",
    "SqlTransactionStore",
]
