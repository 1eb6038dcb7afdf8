"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the detection-engine tables used by ``txn_detection``.
"""

from .detection import Base, DtPendingTransaction, DtSeenMessage, DtTransaction

__all__ = [
    "Base",
    "DtPendingTransaction",
    "DtSeenMessage",
    "DtTransaction",
]
