"""Pytest configuration and shared fixtures."""

import base64
from typing import Any

import pytest

from gmailpush.exceptions import GmailAPIError, MessageNotFoundError


def _b64url(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _envelope(email_address: str, history_id: int | str) -> dict[str, Any]:
    from gmailpush.notification import encode_notification

    return encode_notification(email_address, history_id, "projects/test/subscriptions/gmail")


class FakeGmailClient:
    """In-memory stand-in for GmailClient."""

    def __init__(self) -> None:
        self.expiration = 1_700_000_000_000
        self.watch_error: Exception | None = None
        self.history_pages: dict[str | None, dict[str, Any]] = {None: {}}
        self.messages: dict[str, dict[str, Any]] = {}
        self.message_errors: dict[str, Exception] = {}
        self.attachments: dict[str, str] = {}
        self.labels: list[dict[str, Any]] = []
        self.calls: list[tuple[Any, ...]] = []

    async def watch(self, user_id: str, topic_name: str) -> int:
        self.calls.append(("watch", user_id, topic_name))
        if self.watch_error is not None:
            raise self.watch_error
        self.expiration += 1
        return self.expiration

    async def list_history(
        self, user_id: str, start_history_id: int, page_token: str | None = None
    ) -> dict[str, Any]:
        self.calls.append(("list_history", user_id, start_history_id, page_token))
        return self.history_pages[page_token]

    async def get_message(self, user_id: str, message_id: str) -> dict[str, Any]:
        self.calls.append(("get_message", user_id, message_id))
        if message_id in self.message_errors:
            raise self.message_errors[message_id]
        if message_id not in self.messages:
            raise MessageNotFoundError(message_id)
        return self.messages[message_id]

    async def get_attachment(
        self, user_id: str, message_id: str, attachment_id: str
    ) -> dict[str, Any]:
        self.calls.append(("get_attachment", user_id, message_id, attachment_id))
        if attachment_id not in self.attachments:
            raise GmailAPIError(f"attachment {attachment_id} unavailable")
        return {"data": self.attachments[attachment_id], "size": 0}

    async def list_labels(self, user_id: str) -> list[dict[str, Any]]:
        self.calls.append(("list_labels", user_id))
        return self.labels

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_client() -> FakeGmailClient:
    """Provide an empty fake Gmail client."""
    return FakeGmailClient()


@pytest.fixture
def mock_settings(tmp_path):
    """Provide settings pointing the history store at a temporary file."""
    from gmailpush.config import Settings

    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        pubsub_topic="projects/test/topics/gmail",
        history_file_path=tmp_path / "history.json",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def make_notification():
    """Build push notification envelopes."""
    return _envelope


@pytest.fixture
def b64url():
    """Encode text the way Gmail encodes message bodies."""
    return _b64url


@pytest.fixture
def sample_email_data() -> dict:
    """Provide a full-format Gmail message with bodies and an attachment."""
    return {
        "id": "msg123456",
        "threadId": "thread789",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Weekly Newsletter - Python Tips",
        "payload": {
            "mimeType": "multipart/mixed",
            "filename": "",
            "headers": [
                {"name": "Subject", "value": "Weekly Newsletter - Python Tips"},
                {"name": "From", "value": "Python Weekly <newsletter@python.org>"},
                {"name": "To", "value": "user1 <user1@gmail.com>, user2@gmail.com"},
                {"name": "Date", "value": "Mon, 6 Jan 2025 10:00:00 +0000"},
            ],
            "body": {"size": 0},
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "filename": "",
                    "headers": [],
                    "body": {"size": 0},
                    "parts": [
                        {
                            "mimeType": "text/plain",
                            "filename": "",
                            "body": {"data": _b64url("Welcome to Python tips!"), "size": 23},
                        },
                        {
                            "mimeType": "text/html",
                            "filename": "",
                            "body": {"data": _b64url("<p>Welcome to Python tips!</p>"), "size": 30},
                        },
                    ],
                },
                {
                    "mimeType": "image/jpeg",
                    "filename": "python.jpg",
                    "body": {"attachmentId": "att-1", "size": 2048},
                },
            ],
        },
    }


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo global structlog configuration (e.g. from cli.main) after each test."""
    import structlog

    yield
    structlog.reset_defaults()
