"""History (change log) and cursor models.

A Gmail push notification only tells us *that* a mailbox changed. These models
describe what we remember between notifications (the cursor) and the change log
entries Gmail returns when asked what happened since then.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class HistoryType(str, Enum):
    """Kind of change a history entry records."""

    MESSAGE_ADDED = "messageAdded"
    MESSAGE_DELETED = "messageDeleted"
    LABEL_ADDED = "labelAdded"
    LABEL_REMOVED = "labelRemoved"

    @property
    def field_name(self) -> str:
        """Name of the history entry key carrying this kind, e.g. messagesAdded."""
        return re.sub(r"^(message|label)", r"\1s", self.value)


# Priority order used whenever an entry has to be tagged with a single kind.
VALID_HISTORY_TYPES: tuple[HistoryType, ...] = tuple(HistoryType)


class Notification(BaseModel):
    """Decoded payload of a Gmail push notification."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    email_address: str = Field(alias="emailAddress", description="Mailbox that changed")
    history_id: int = Field(alias="historyId", description="Mailbox history id after the change")


class HistoryCursor(BaseModel):
    """Remembered progress and watch lease for a single mailbox."""

    model_config = ConfigDict(populate_by_name=True)

    email_address: str = Field(alias="emailAddress", description="Mailbox address")
    prev_history_id: int = Field(
        alias="prevHistoryId", description="Last history id this mailbox was synced up to"
    )
    watch_expiration: int | None = Field(
        default=None,
        alias="watchExpiration",
        description="Watch expiration in milliseconds since epoch",
    )


class HistoryMessage(BaseModel):
    """Message reference inside a history entry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    thread_id: str | None = Field(default=None, alias="threadId")
    label_ids: list[str] | None = Field(default=None, alias="labelIds")


class MessageChange(BaseModel):
    """Element of messagesAdded / messagesDeleted."""

    model_config = ConfigDict(extra="allow")

    message: HistoryMessage


class LabelChange(BaseModel):
    """Element of labelsAdded / labelsRemoved, carrying the label delta."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message: HistoryMessage
    label_ids: list[str] = Field(default_factory=list, alias="labelIds")


class HistoryEntry(BaseModel):
    """One entry of a users.history.list response."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    messages: list[HistoryMessage] = Field(default_factory=list)
    messages_added: list[MessageChange] | None = Field(default=None, alias="messagesAdded")
    messages_deleted: list[MessageChange] | None = Field(default=None, alias="messagesDeleted")
    labels_added: list[LabelChange] | None = Field(default=None, alias="labelsAdded")
    labels_removed: list[LabelChange] | None = Field(default=None, alias="labelsRemoved")

    def has_type(self, history_type: HistoryType) -> bool:
        """Return True if this entry carries a change of the given kind."""
        return getattr(self, _FIELD_BY_TYPE[history_type]) is not None

    @property
    def history_type(self) -> HistoryType | None:
        """First kind this entry carries, in VALID_HISTORY_TYPES order.

        Gmail emits one kind per entry. Should an entry ever carry more than one,
        only the first in priority order is reported.
        """
        for history_type in VALID_HISTORY_TYPES:
            if self.has_type(history_type):
                return history_type
        return None

    def added_label_ids(self) -> set[str] | None:
        """Union of label ids added by this entry, or None without a labelsAdded delta."""
        return _label_delta(self.labels_added)

    def removed_label_ids(self) -> set[str] | None:
        """Union of label ids removed by this entry, or None without a labelsRemoved delta."""
        return _label_delta(self.labels_removed)


_FIELD_BY_TYPE: dict[HistoryType, str] = {
    HistoryType.MESSAGE_ADDED: "messages_added",
    HistoryType.MESSAGE_DELETED: "messages_deleted",
    HistoryType.LABEL_ADDED: "labels_added",
    HistoryType.LABEL_REMOVED: "labels_removed",
}


def _label_delta(changes: list[LabelChange] | None) -> set[str] | None:
    if changes is None:
        return None
    return {label_id for change in changes for label_id in change.label_ids}
