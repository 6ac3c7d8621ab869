"""Unit tests for the JSON history cursor store."""

import json

import pytest

from gmailpush.exceptions import HistoryStoreError
from gmailpush.history.store import HistoryStore, find_or_create_cursor
from gmailpush.models import HistoryCursor


@pytest.mark.asyncio
async def test_missing_file_loads_as_empty(tmp_path) -> None:
    store = HistoryStore(tmp_path / "missing.json")

    assert await store.load() == []


@pytest.mark.asyncio
async def test_save_then_load_round_trips(tmp_path) -> None:
    store = HistoryStore(tmp_path / "nested" / "history.json")
    cursors = [
        HistoryCursor(email_address="user1@gmail.com", prev_history_id=10, watch_expiration=99),
        HistoryCursor(email_address="user2@gmail.com", prev_history_id=20),
    ]

    await store.save(cursors)

    assert await store.load() == cursors
    assert json.loads(store.path.read_text(encoding="utf-8")) == [
        {"emailAddress": "user1@gmail.com", "prevHistoryId": 10, "watchExpiration": 99},
        {"emailAddress": "user2@gmail.com", "prevHistoryId": 20, "watchExpiration": None},
    ]


@pytest.mark.asyncio
async def test_corrupt_file_is_fatal(tmp_path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(HistoryStoreError):
        await HistoryStore(path).load()


@pytest.mark.asyncio
async def test_unreadable_path_is_fatal(tmp_path) -> None:
    # A directory exists at the path, so reading fails with something other than ENOENT.
    with pytest.raises(HistoryStoreError):
        await HistoryStore(tmp_path).load()


def test_find_or_create_cursor_reuses_existing() -> None:
    existing = HistoryCursor(email_address="user1@gmail.com", prev_history_id=5)
    cursors = [existing]

    assert find_or_create_cursor(cursors, "user1@gmail.com", 50) is existing
    assert len(cursors) == 1


def test_find_or_create_cursor_seeds_new_mailbox() -> None:
    cursors = [HistoryCursor(email_address="user1@gmail.com", prev_history_id=5)]

    cursor = find_or_create_cursor(cursors, "user2@gmail.com", 50)

    assert cursor.prev_history_id == 50
    assert cursor.watch_expiration is None
    assert cursors[-1] is cursor


@pytest.mark.asyncio
async def test_failed_write_keeps_previous_store(tmp_path, monkeypatch) -> None:
    store = HistoryStore(tmp_path / "history.json")
    previous = [HistoryCursor(email_address="user1@gmail.com", prev_history_id=10)]
    await store.save(previous)

    def disk_full(fd: int) -> None:
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("gmailpush.history.store.os.fsync", disk_full)

    with pytest.raises(HistoryStoreError):
        await store.save(
            [HistoryCursor(email_address="user1@gmail.com", prev_history_id=20)]
        )

    monkeypatch.undo()
    assert await store.load() == previous
    assert [p.name for p in tmp_path.iterdir()] == ["history.json"]
