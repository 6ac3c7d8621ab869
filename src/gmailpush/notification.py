"""Decoding of Gmail Pub/Sub push notification envelopes.

A push request body looks like::

    {"message": {"data": "<base64 JSON>", ...}, "subscription": "projects/..."}

and the decoded data is ``{"emailAddress": "user1@gmail.com", "historyId": "9876543210"}``.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from gmailpush.exceptions import NotificationDecodeError
from gmailpush.models import Notification


def decode_notification(envelope: Mapping[str, Any]) -> Notification:
    """Decode a push notification envelope.

    Raises:
        NotificationDecodeError: If the envelope or its payload is malformed.
    """

    try:
        data = envelope["message"]["data"]
        payload = json.loads(base64.b64decode(data).decode("utf-8"))
    except (KeyError, TypeError, binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise NotificationDecodeError(f"Malformed push notification: {exc}") from exc

    try:
        return Notification.model_validate(payload)
    except ValidationError as exc:
        raise NotificationDecodeError(f"Malformed push notification payload: {exc}") from exc


def get_email_address(envelope: Mapping[str, Any]) -> str:
    """Return the mailbox address a push notification is about."""

    return decode_notification(envelope).email_address


def encode_notification(
    email_address: str,
    history_id: int | str,
    subscription: str = "",
) -> dict[str, Any]:
    """Build a push envelope, mostly useful for tests and local replays."""

    data = json.dumps({"emailAddress": email_address, "historyId": history_id})
    return {
        "message": {"data": base64.b64encode(data.encode("utf-8")).decode("ascii")},
        "subscription": subscription,
    }
