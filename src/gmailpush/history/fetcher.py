"""Paged retrieval of mailbox history."""

from __future__ import annotations

import structlog

from gmailpush.gmail.client import GmailClient
from gmailpush.models import HistoryEntry

logger = structlog.get_logger()


async def fetch_history(
    client: GmailClient, user_id: str, start_history_id: int
) -> list[HistoryEntry]:
    """Fetch every history entry after `start_history_id`, following page tokens.

    A response without entries is an empty result, not an error.
    """

    entries: list[HistoryEntry] = []
    page_token: str | None = None
    pages = 0
    while True:
        response = await client.list_history(user_id, start_history_id, page_token)
        pages += 1
        entries.extend(
            HistoryEntry.model_validate(raw) for raw in response.get("history", []) or []
        )
        page_token = response.get("nextPageToken")
        if not page_token:
            break

    logger.info(
        "history_fetched",
        user_id=user_id,
        start_history_id=start_history_id,
        pages=pages,
        entry_count=len(entries),
    )
    return entries
