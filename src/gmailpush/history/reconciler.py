"""Decides whether a push notification needs a history fetch.

Every cycle renews the Gmail watch and persists the cursor collection, whether
or not the notification turns out to be stale.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from gmailpush.gmail.client import GmailClient
from gmailpush.history.store import HistoryStore, find_or_create_cursor
from gmailpush.notification import decode_notification

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one reconciliation cycle."""

    should_proceed: bool
    email_address: str
    start_history_id: int
    watch_expiration: int


class HistoryReconciler:
    """Keeps the history store and the Gmail watch in step with notifications."""

    def __init__(self, store: HistoryStore, topic_name: str) -> None:
        self._store = store
        self._topic_name = topic_name

    async def reconcile(self, envelope: Mapping[str, Any], client: GmailClient) -> ReconcileResult:
        """Run one cycle for a push notification.

        The returned `start_history_id` is the lower bound for the history fetch
        when `should_proceed` is True.

        Raises:
            NotificationDecodeError: Before any store access, on a bad envelope.
            HistoryStoreError: If the store exists but cannot be read.
            GmailAPIError: If the watch cannot be renewed; nothing is persisted.
        """

        notification = decode_notification(envelope)
        email_address = notification.email_address

        cursors = await self._store.load()
        cursor = find_or_create_cursor(cursors, email_address, notification.history_id)

        cursor.watch_expiration = await client.watch(email_address, self._topic_name)
        logger.info(
            "watch_renewed",
            email_address=email_address,
            watch_expiration=cursor.watch_expiration,
        )

        start_history_id = cursor.prev_history_id
        should_proceed = notification.history_id > cursor.prev_history_id
        if should_proceed:
            cursor.prev_history_id = notification.history_id

        await self._store.save(cursors)

        logger.info(
            "notification_reconciled",
            email_address=email_address,
            history_id=notification.history_id,
            start_history_id=start_history_id,
            should_proceed=should_proceed,
        )
        return ReconcileResult(
            should_proceed=should_proceed,
            email_address=email_address,
            start_history_id=start_history_id,
            watch_expiration=cursor.watch_expiration,
        )
