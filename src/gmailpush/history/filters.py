"""Filtering of history entries and parsed messages by kind and label."""

from __future__ import annotations

from collections.abc import Collection, Iterable

from gmailpush.models import VALID_HISTORY_TYPES, HistoryEntry, HistoryType, ParsedMessage
from gmailpush.models.options import check_label_filters


def filter_history(
    entries: list[HistoryEntry],
    history_types: Iterable[HistoryType] = VALID_HISTORY_TYPES,
    added_label_ids: Collection[str] | None = None,
    removed_label_ids: Collection[str] | None = None,
) -> list[HistoryEntry]:
    """Select the history entries whose messages should be fetched.

    Entries are grouped by kind in the order `history_types` lists them. When
    label ids are given, an entry must carry the matching label delta and share
    at least one label with it; both label conditions must hold when both are set.
    Empty label id collections are treated as not given.
    """

    by_type = [
        entry
        for history_type in history_types
        for entry in entries
        if entry.has_type(history_type)
    ]

    if not added_label_ids and not removed_label_ids:
        return by_type

    return [
        entry
        for entry in by_type
        if _delta_matches(entry.added_label_ids(), added_label_ids)
        and _delta_matches(entry.removed_label_ids(), removed_label_ids)
    ]


def filter_messages(
    messages: list[ParsedMessage],
    with_label_ids: Collection[str] | None = None,
    without_label_ids: Collection[str] | None = None,
) -> list[ParsedMessage]:
    """Keep messages carrying any of `with_label_ids` and none of `without_label_ids`.

    Messages without label ids (deleted or not found) never satisfy an include
    set and are never dropped by an exclude set alone.

    Raises:
        ConfigurationError: If the include and exclude sets share a label id.
    """

    check_label_filters(with_label_ids, without_label_ids)
    return [
        message
        for message in messages
        if _message_matches(message, with_label_ids, without_label_ids)
    ]


def _delta_matches(delta: set[str] | None, wanted: Collection[str] | None) -> bool:
    if not wanted:
        return True
    if delta is None:
        return False
    return not delta.isdisjoint(wanted)


def _message_matches(
    message: ParsedMessage,
    with_label_ids: Collection[str] | None,
    without_label_ids: Collection[str] | None,
) -> bool:
    labels = message.label_ids
    if labels is None:
        return not with_label_ids
    if with_label_ids and not any(label in labels for label in with_label_ids):
        return False
    if without_label_ids and any(label in labels for label in without_label_ids):
        return False
    return True
