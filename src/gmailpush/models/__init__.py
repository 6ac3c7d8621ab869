"""Data models for Gmail push.

This module contains Pydantic models for data validation and serialization.
"""

from gmailpush.models.history import (
    VALID_HISTORY_TYPES,
    HistoryCursor,
    HistoryEntry,
    HistoryMessage,
    HistoryType,
    LabelChange,
    MessageChange,
    Notification,
)
from gmailpush.models.message import (
    Attachment,
    EmailAddress,
    MessageHeader,
    MessagePart,
    ParsedMessage,
    PartBody,
    PartKind,
    classify_mime_type,
)
from gmailpush.models.options import RetrievalOptions, SyncContext

__all__ = [
    "VALID_HISTORY_TYPES",
    "Attachment",
    "EmailAddress",
    "HistoryCursor",
    "HistoryEntry",
    "HistoryMessage",
    "HistoryType",
    "LabelChange",
    "MessageChange",
    "MessageHeader",
    "MessagePart",
    "Notification",
    "ParsedMessage",
    "PartBody",
    "PartKind",
    "RetrievalOptions",
    "SyncContext",
    "classify_mime_type",
]
