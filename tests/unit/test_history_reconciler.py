"""Unit tests for the notification reconciler."""

import pytest

from gmailpush.exceptions import GmailAPIError, NotificationDecodeError
from gmailpush.history import HistoryReconciler, HistoryStore
from gmailpush.models import HistoryCursor

TOPIC = "projects/test/topics/gmail"


@pytest.fixture
def store(tmp_path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.json")


@pytest.mark.asyncio
async def test_first_notification_seeds_cursor_and_stops(store, fake_client, make_notification) -> None:
    reconciler = HistoryReconciler(store, TOPIC)

    result = await reconciler.reconcile(make_notification("user1@gmail.com", 100), fake_client)

    assert result.should_proceed is False
    cursors = await store.load()
    assert len(cursors) == 1
    assert cursors[0].email_address == "user1@gmail.com"
    assert cursors[0].prev_history_id == 100
    assert cursors[0].watch_expiration == fake_client.expiration
    assert fake_client.calls == [("watch", "user1@gmail.com", TOPIC)]


@pytest.mark.asyncio
async def test_newer_history_id_advances_cursor(store, fake_client, make_notification) -> None:
    await store.save([HistoryCursor(email_address="user1@gmail.com", prev_history_id=100)])
    reconciler = HistoryReconciler(store, TOPIC)

    result = await reconciler.reconcile(make_notification("user1@gmail.com", 150), fake_client)

    assert result.should_proceed is True
    assert result.start_history_id == 100
    assert (await store.load())[0].prev_history_id == 150


@pytest.mark.asyncio
async def test_stale_history_id_keeps_cursor_but_renews_watch(
    store, fake_client, make_notification
) -> None:
    await store.save(
        [HistoryCursor(email_address="user1@gmail.com", prev_history_id=100, watch_expiration=1)]
    )
    reconciler = HistoryReconciler(store, TOPIC)

    for history_id in (100, 90):
        result = await reconciler.reconcile(
            make_notification("user1@gmail.com", history_id), fake_client
        )
        assert result.should_proceed is False

    cursor = (await store.load())[0]
    assert cursor.prev_history_id == 100
    assert cursor.watch_expiration == fake_client.expiration
    assert fake_client.call_names() == ["watch", "watch"]


@pytest.mark.asyncio
async def test_unknown_mailbox_is_added_next_to_existing_ones(
    store, fake_client, make_notification
) -> None:
    await store.save([HistoryCursor(email_address="user1@gmail.com", prev_history_id=100)])
    reconciler = HistoryReconciler(store, TOPIC)

    result = await reconciler.reconcile(make_notification("user2@gmail.com", 7), fake_client)

    assert result.should_proceed is False
    cursors = {c.email_address: c.prev_history_id for c in await store.load()}
    assert cursors == {"user1@gmail.com": 100, "user2@gmail.com": 7}


@pytest.mark.asyncio
async def test_watch_failure_persists_nothing(store, fake_client, make_notification) -> None:
    fake_client.watch_error = GmailAPIError("forbidden")
    reconciler = HistoryReconciler(store, TOPIC)

    with pytest.raises(GmailAPIError):
        await reconciler.reconcile(make_notification("user1@gmail.com", 100), fake_client)

    assert not store.path.exists()


@pytest.mark.asyncio
async def test_malformed_envelope_fails_before_store_access(store, fake_client) -> None:
    reconciler = HistoryReconciler(store, TOPIC)

    with pytest.raises(NotificationDecodeError):
        await reconciler.reconcile({"message": {}}, fake_client)

    assert fake_client.calls == []
    assert not store.path.exists()
