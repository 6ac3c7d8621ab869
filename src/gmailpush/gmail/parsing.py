"""Helpers for parsing full Gmail messages into `ParsedMessage` records."""

from __future__ import annotations

import base64
import re
from typing import Any

from gmailpush.models import (
    Attachment,
    EmailAddress,
    HistoryEntry,
    MessagePart,
    ParsedMessage,
    PartKind,
)

# Optional display name, then an address that may be angle-bracketed.
_ADDRESS_RE = re.compile(r"(?:(.*)\s)?(?:<?(.+@[^>]+)>?)")

_ADDRESS_LIST_SEPARATOR = ", "


def parse_email_address(value: str) -> EmailAddress:
    """Parse an address header segment such as `user1 <user1@gmail.com>`.

    The display name falls back to the address. A segment that does not look
    like an address at all is echoed back as both name and address.
    """

    match = _ADDRESS_RE.search(value)
    if match is None:
        return EmailAddress(name=value, address=value)

    name, address = match.group(1), match.group(2)
    return EmailAddress(name=name or address, address=address)


def parse_address_list(value: str) -> list[EmailAddress]:
    return [parse_email_address(part) for part in value.split(_ADDRESS_LIST_SEPARATOR)]


def decode_base64url(data: str | None) -> bytes:
    """Decode Gmail's base64url data, tolerating missing padding."""

    if not data:
        return b""
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def message_to_parsed_message(message: dict[str, Any], entry: HistoryEntry) -> ParsedMessage:
    """Convert a Gmail API message (format=full) to ParsedMessage.

    Args:
        message: Gmail API message dict, or a not-found stub.
        entry: The history entry that referenced the message.

    Returns:
        ParsedMessage: The message with headers, bodies and attachment metadata
        extracted. Messages without a payload only get `historyType`.
    """

    parsed = ParsedMessage.model_validate(message)
    history_type = entry.history_type
    parsed.history_type = history_type.value if history_type is not None else ""

    if parsed.payload is None:
        return parsed

    root = MessagePart.model_validate(parsed.payload)

    sender = root.header("From")
    if sender is not None:
        parsed.from_ = parse_email_address(sender)

    for name in ("To", "Cc", "Bcc"):
        value = root.header(name)
        if value is not None:
            setattr(parsed, name.lower(), parse_address_list(value))

    parsed.subject = root.header("Subject")
    parsed.date = root.header("Date")

    parsed.attachments = []
    _collect_parts(root, parsed)

    return parsed


def _collect_parts(part: MessagePart, parsed: ParsedMessage) -> None:
    kind = part.kind
    if kind is PartKind.MULTIPART:
        for child in part.parts:
            _collect_parts(child, parsed)
    elif kind is PartKind.TEXT_HTML:
        parsed.body_html = _decode_text(part)
    elif kind is PartKind.TEXT_PLAIN:
        parsed.body_text = _decode_text(part)
    elif kind is PartKind.ATTACHMENT:
        parsed.attachments.append(
            Attachment(
                mime_type=part.mime_type,
                filename=part.filename,
                attachment_id=part.body.attachment_id,
                size=part.body.size,
            )
        )


def _decode_text(part: MessagePart) -> str:
    return decode_base64url(part.body.data).decode("utf-8", errors="replace")
