"""Gmail push agent implementation.

This module provides the agent that turns push notifications into parsed
message changes, composing the history store, the watch renewal, history
fetching and filtering, and message resolution.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from gmailpush.config import Settings
from gmailpush.gmail.client import GmailClient
from gmailpush.gmail.messages import attach_attachment_data, fetch_attachment, resolve_messages
from gmailpush.history import (
    HistoryReconciler,
    HistoryStore,
    fetch_history,
    filter_history,
    filter_messages,
)
from gmailpush.models import (
    Attachment,
    HistoryType,
    ParsedMessage,
    RetrievalOptions,
    SyncContext,
)
from gmailpush.notification import decode_notification, get_email_address

logger = structlog.get_logger()

ClientFactory = Callable[[Any], GmailClient]


class GmailPushAgent:
    """Turns Gmail push notifications into filtered, parsed messages.

    Calls for the same mailbox must not run concurrently: the history store is
    read and rewritten without locking.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        store: HistoryStore | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize the push agent.

        Args:
            settings: Application settings. If None, uses default settings.
            store: History store. If None, uses `settings.history_file_path`.
            client_factory: Builds a GmailClient from an OAuth2 token. If None,
                uses `GmailClient.from_token`.

        Raises:
            ConfigurationError: If client id, client secret or topic are unset.
        """
        from gmailpush.config import get_settings

        self.settings = settings or get_settings()
        self.settings.require_watch_config()
        self.store = store or HistoryStore(self.settings.history_file_path)
        self._client_factory = client_factory or self._default_client
        self._reconciler = HistoryReconciler(self.store, self.settings.pubsub_topic or "")
        logger.info("gmail_push_agent_initialized", history_file=str(self.store.path))

    async def get_messages_without_attachment(self, **options: Any) -> list[ParsedMessage]:
        """Get the messages changed since the previous notification, without attachment data.

        Keyword Args:
            notification: Gmail push notification envelope.
            token: OAuth2 token for the mailbox.
            historyTypes: Kinds of change to keep (default: all four).
            addedLabelIds: Keep only labelAdded entries adding one of these labels.
            removedLabelIds: Keep only labelRemoved entries removing one of these labels.
            withLabelIds: Keep only messages carrying one of these labels.
            withoutLabelIds: Drop messages carrying any of these labels.

        Returns:
            Parsed messages, or an empty list when the notification is stale.

        Raises:
            ConfigurationError: On invalid options, before any I/O.
        """
        validated = RetrievalOptions.from_options(options)
        _, _, messages = await self._retrieve(validated)
        return messages

    async def get_messages(self, **options: Any) -> list[ParsedMessage]:
        """Same as `get_messages_without_attachment`, with attachment data fetched."""
        validated = RetrievalOptions.from_options(options)
        client, user_id, messages = await self._retrieve(validated)
        if messages:
            await attach_attachment_data(client, user_id, messages)
        return messages

    async def get_new_message(
        self, notification: Mapping[str, Any], token: Any
    ) -> ParsedMessage | None:
        """Get a newly received inbox message with attachment data, or None.

        The result set is assumed to hold at most one message.
        """
        validated = RetrievalOptions(
            notification=notification,
            token=token,
            history_types=(HistoryType.MESSAGE_ADDED,),
            with_label_ids=("INBOX",),
            without_label_ids=("SENT",),
        )
        client, user_id, messages = await self._retrieve(validated)
        if not messages:
            return None

        message = messages[0]
        await attach_attachment_data(client, user_id, [message])
        return message

    async def get_attachment(
        self,
        message: ParsedMessage,
        attachment: Attachment,
        *,
        notification: Mapping[str, Any],
        token: Any,
    ) -> bytes:
        """Download one attachment of a message from the notification's mailbox."""
        client = self._client_factory(token)
        return await fetch_attachment(client, get_email_address(notification), message, attachment)

    async def get_labels(self, notification: Mapping[str, Any], token: Any) -> list[dict[str, Any]]:
        """List the labels of the notification's mailbox."""
        user_id = get_email_address(notification)
        client = self._client_factory(token)
        return await client.list_labels(user_id)

    def get_email_address(self, notification: Mapping[str, Any]) -> str:
        """Return the mailbox address a push notification is about."""
        return get_email_address(notification)

    async def _retrieve(
        self, options: RetrievalOptions
    ) -> tuple[GmailClient, str, list[ParsedMessage]]:
        # A malformed envelope fails before a client is built.
        decode_notification(options.notification)

        client = self._client_factory(options.token)
        result = await self._reconciler.reconcile(options.notification, client)
        if not result.should_proceed:
            return client, result.email_address, []

        context = SyncContext(
            user_id=result.email_address,
            start_history_id=result.start_history_id,
            options=options,
        )
        return client, context.user_id, await self._sync(client, context)

    async def _sync(self, client: GmailClient, context: SyncContext) -> list[ParsedMessage]:
        options = context.options
        history = await fetch_history(client, context.user_id, context.start_history_id)
        history = filter_history(
            history,
            options.history_types,
            options.added_label_ids,
            options.removed_label_ids,
        )
        if not history:
            return []

        messages = await resolve_messages(client, context.user_id, history)
        messages = filter_messages(messages, options.with_label_ids, options.without_label_ids)
        logger.info(
            "messages_retrieved",
            user_id=context.user_id,
            history_entries=len(history),
            message_count=len(messages),
        )
        return messages

    def _default_client(self, token: Any) -> GmailClient:
        return GmailClient.from_token(token, self.settings)
