"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the expense domain models used by ``expense_tracker``.
"""

from .expenses import Base, EtTransaction, EtUserProfile

__all__ = [
    "Base",
    "EtTransaction",
    "EtUserProfile",
]
