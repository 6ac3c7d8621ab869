"""Gmail API client implementation.

This module provides a thin async client for the Gmail API calls the push
pipeline needs: watch renewal, history paging, message and attachment lookups
and label listing.

Notes:
    The Google API client is synchronous. This project wraps those calls using
    `asyncio.to_thread` so the rest of the codebase can remain async-friendly.
    `httplib2.Http` is not thread-safe, so every request executes on a fresh
    transport from the client's `http_factory` instead of the service's own.
    Retries, timeouts and token refresh belong to the Google client libraries;
    this wrapper translates failures into project exceptions and nothing more.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from functools import partial
from typing import Any

import httplib2
import structlog
from googleapiclient.errors import HttpError

from gmailpush.config import Settings
from gmailpush.exceptions import AuthenticationError, GmailAPIError, MessageNotFoundError

logger = structlog.get_logger()

GMAIL_API_VERSION = "v1"


class GmailClient:
    """Gmail API client bound to one set of OAuth2 credentials."""

    def __init__(self, service: Any, http_factory: Callable[[], Any] | None = None) -> None:
        """Initialize Gmail client.

        Args:
            service: A `googleapiclient` Gmail v1 service resource.
            http_factory: Returns a new transport for each request. If None,
                uses an unauthenticated `httplib2.Http`.
        """
        self._service = service
        self._http_factory = http_factory or httplib2.Http
        logger.debug("gmail_client_initialized")

    @classmethod
    def from_token(cls, token: Any, settings: Settings | None = None) -> GmailClient:
        """Build a client from an OAuth2 token.

        Args:
            token: Either `google.oauth2.credentials.Credentials` or a mapping with
                `access_token` (and optionally `refresh_token`).
            settings: Application settings. If None, uses default settings.

        Raises:
            AuthenticationError: If no usable credentials can be built.
        """
        from gmailpush.config import get_settings

        settings = settings or get_settings()
        try:
            credentials = _credentials_from_token(token, settings)
            service = _build_service(credentials)
        except AuthenticationError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_authentication_failed", error=str(exc))
            raise AuthenticationError(str(exc)) from exc
        return cls(service, http_factory=partial(_authorized_http, credentials))

    async def watch(self, user_id: str, topic_name: str) -> int:
        """Start or renew the mailbox watch.

        Returns:
            New watch expiration in milliseconds since epoch.

        Raises:
            GmailAPIError: If the API request fails.
        """
        logger.info("renewing_watch", user_id=user_id, topic_name=topic_name)
        response = await self._call(
            "watch",
            self._service.users().watch(userId=user_id, body={"topicName": topic_name}),
        )
        return int(response["expiration"])

    async def list_history(
        self,
        user_id: str,
        start_history_id: int,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of mailbox history after `start_history_id`.

        Raises:
            GmailAPIError: If the API request fails.
        """
        logger.debug(
            "listing_history",
            user_id=user_id,
            start_history_id=start_history_id,
            page_token=page_token,
        )
        kwargs: dict[str, Any] = {"userId": user_id, "startHistoryId": str(start_history_id)}
        if page_token:
            kwargs["pageToken"] = page_token
        return await self._call(
            "list_history", self._service.users().history().list(**kwargs)
        )

    async def get_message(self, user_id: str, message_id: str) -> dict[str, Any]:
        """Get a full message by ID.

        Raises:
            MessageNotFoundError: If Gmail answers 404 (e.g. the message was deleted).
            GmailAPIError: If the API request fails otherwise.
        """
        logger.debug("getting_message", user_id=user_id, message_id=message_id)
        request = self._service.users().messages().get(userId=user_id, id=message_id)
        try:
            return await asyncio.to_thread(self._execute, request)
        except HttpError as exc:
            if exc.resp.status == 404:
                raise MessageNotFoundError(message_id) from exc
            logger.exception("gmail_get_message_failed", message_id=message_id, error=str(exc))
            raise GmailAPIError(str(exc)) from exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("gmail_get_message_failed", message_id=message_id, error=str(exc))
            raise GmailAPIError(str(exc)) from exc

    async def get_attachment(
        self, user_id: str, message_id: str, attachment_id: str
    ) -> dict[str, Any]:
        """Get the body of an attachment (base64url `data`)."""
        logger.debug(
            "getting_attachment",
            user_id=user_id,
            message_id=message_id,
            attachment_id=attachment_id,
        )
        request = (
            self._service.users()
            .messages()
            .attachments()
            .get(userId=user_id, messageId=message_id, id=attachment_id)
        )
        return await self._call("get_attachment", request)

    async def list_labels(self, user_id: str) -> list[dict[str, Any]]:
        """List the mailbox labels."""
        logger.info("listing_labels", user_id=user_id)
        response = await self._call(
            "list_labels", self._service.users().labels().list(userId=user_id)
        )
        return list(response.get("labels", []) or [])

    async def _call(self, operation: str, request: Any) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._execute, request)
        except Exception as exc:  # noqa: BLE001
            logger.exception(f"gmail_{operation}_failed", error=str(exc))
            raise GmailAPIError(str(exc)) from exc

    def _execute(self, request: Any) -> dict[str, Any]:
        return request.execute(http=self._http_factory())


def _credentials_from_token(token: Any, settings: Settings) -> Any:
    from google.oauth2.credentials import Credentials

    if isinstance(token, Credentials):
        return token
    if not isinstance(token, Mapping) or not token.get("access_token"):
        raise AuthenticationError("token must be Credentials or a mapping with access_token")

    return Credentials(
        token=token["access_token"],
        refresh_token=token.get("refresh_token"),
        token_uri=settings.token_uri,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        scopes=(token.get("scope") or "").split() or None,
    )


def _authorized_http(credentials: Any) -> Any:
    from google_auth_httplib2 import AuthorizedHttp

    return AuthorizedHttp(credentials, http=httplib2.Http())


def _build_service(credentials: Any) -> Any:
    # Imported lazily to keep import-time cost low and tests fast.
    from googleapiclient.discovery import build

    # cache_discovery=False prevents writing discovery docs to disk.
    return build("gmail", GMAIL_API_VERSION, credentials=credentials, cache_discovery=False)
