"""JSON file store for per-mailbox history cursors.

The whole collection is read and rewritten on every cycle. Writes go to a
temporary file that replaces the store in one step, so a failed write leaves
the previous store intact. There is no locking: callers must serialize cycles
for the same mailbox.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import tempfile
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from gmailpush.exceptions import HistoryStoreError
from gmailpush.models import HistoryCursor

logger = structlog.get_logger()

_CURSORS = TypeAdapter(list[HistoryCursor])


class HistoryStore:
    """Repository for the remembered history id and watch expiration per mailbox."""

    def __init__(self, path: Path) -> None:
        """Create a store.

        Args:
            path: Path to the JSON file holding the cursor array.
        """

        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> list[HistoryCursor]:
        """Load all cursors. A missing file is an empty store.

        Raises:
            HistoryStoreError: If the file exists but cannot be read or decoded.
        """

        try:
            raw = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.info("history_store_missing", path=str(self._path))
            return []
        except OSError as exc:
            raise HistoryStoreError(f"Cannot read history store {self._path}: {exc}") from exc

        try:
            return _CURSORS.validate_json(raw)
        except ValidationError as exc:
            raise HistoryStoreError(f"Invalid history store {self._path}: {exc}") from exc

    async def save(self, cursors: list[HistoryCursor]) -> None:
        """Rewrite the whole cursor array.

        Raises:
            HistoryStoreError: If the store cannot be written; the previous
                contents are kept.
        """

        data = [cursor.model_dump(by_alias=True) for cursor in cursors]
        try:
            await asyncio.to_thread(self._write, json.dumps(data))
        except OSError as exc:
            raise HistoryStoreError(f"Cannot write history store {self._path}: {exc}") from exc
        logger.debug("history_store_saved", path=str(self._path), cursor_count=len(cursors))

    def _write(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise


def find_or_create_cursor(
    cursors: list[HistoryCursor], email_address: str, history_id: int
) -> HistoryCursor:
    """Return the cursor for `email_address`, seeding a new one at `history_id`."""

    for cursor in cursors:
        if cursor.email_address == email_address:
            return cursor

    cursor = HistoryCursor(email_address=email_address, prev_history_id=history_id)
    cursors.append(cursor)
    logger.info("history_cursor_created", email_address=email_address, history_id=history_id)
    return cursor
