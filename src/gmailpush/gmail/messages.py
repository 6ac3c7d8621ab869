"""Concurrent message resolution and attachment download."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from gmailpush.exceptions import MessageNotFoundError
from gmailpush.gmail.client import GmailClient
from gmailpush.gmail.parsing import decode_base64url, message_to_parsed_message
from gmailpush.models import Attachment, HistoryEntry, ParsedMessage

logger = structlog.get_logger()


async def get_message_or_stub(client: GmailClient, user_id: str, message_id: str) -> dict[str, Any]:
    """Fetch a message, substituting a `notFound` stub when Gmail answers 404.

    Any other API error propagates.
    """

    try:
        return await client.get_message(user_id, message_id)
    except MessageNotFoundError:
        logger.info("message_not_found", user_id=user_id, message_id=message_id)
        return {"id": message_id, "attachments": [], "notFound": True}


async def resolve_messages(
    client: GmailClient, user_id: str, entries: list[HistoryEntry]
) -> list[ParsedMessage]:
    """Fetch and parse every message referenced by `entries`.

    All lookups run concurrently; the result keeps entry order, then message
    order within each entry. The first failing lookup fails the whole call.
    """

    async def resolve(ref_id: str, entry: HistoryEntry) -> ParsedMessage:
        message = await get_message_or_stub(client, user_id, ref_id)
        return message_to_parsed_message(message, entry)

    parsed = await asyncio.gather(
        *(resolve(ref.id, entry) for entry in entries for ref in entry.messages)
    )
    logger.info("messages_resolved", user_id=user_id, message_count=len(parsed))
    return list(parsed)


async def fetch_attachment(
    client: GmailClient, user_id: str, message: ParsedMessage, attachment: Attachment
) -> bytes:
    """Download and decode one attachment of `message`."""

    if not attachment.attachment_id:
        return b""
    response = await client.get_attachment(user_id, message.id, attachment.attachment_id)
    return decode_base64url(response.get("data"))


async def attach_attachment_data(
    client: GmailClient, user_id: str, messages: list[ParsedMessage]
) -> None:
    """Fill `data` on every attachment of every message, concurrently."""

    async def attach(message: ParsedMessage, attachment: Attachment) -> None:
        attachment.data = await fetch_attachment(client, user_id, message, attachment)

    await asyncio.gather(
        *(attach(message, attachment) for message in messages for attachment in message.attachments)
    )
