"""Mailbox history tracking.

This package remembers how far each mailbox has been synced, renews the Gmail
watch, and fetches and filters the history entries between two notifications.
"""

from .fetcher import fetch_history
from .filters import filter_history, filter_messages
from .reconciler import HistoryReconciler, ReconcileResult
from .store import HistoryStore

__all__ = [
    "HistoryReconciler",
    "HistoryStore",
    "ReconcileResult",
    "fetch_history",
    "filter_history",
    "filter_messages",
]
