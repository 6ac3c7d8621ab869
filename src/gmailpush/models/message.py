"""Message models: the Gmail document tree and the parsed output record."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ATTACHMENT_MIME_PREFIXES: tuple[str, ...] = (
    "image/",
    "audio/",
    "video/",
    "application/",
    "font/",
    "model/",
)


class PartKind(str, Enum):
    """Classification of a node in a message's MIME tree."""

    MULTIPART = "multipart"
    TEXT_PLAIN = "text_plain"
    TEXT_HTML = "text_html"
    ATTACHMENT = "attachment"
    IGNORED = "ignored"


def classify_mime_type(mime_type: str) -> PartKind:
    """Map a part's MIME type to the way it is handled while parsing."""

    if mime_type.startswith("multipart/"):
        return PartKind.MULTIPART
    if mime_type == "text/html":
        return PartKind.TEXT_HTML
    if mime_type == "text/plain":
        return PartKind.TEXT_PLAIN
    if mime_type.startswith(ATTACHMENT_MIME_PREFIXES):
        return PartKind.ATTACHMENT
    return PartKind.IGNORED


class MessageHeader(BaseModel):
    """A single name/value header of a message part."""

    name: str
    value: str


class PartBody(BaseModel):
    """Body of a message part. Attachments carry an id instead of inline data."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    data: str | None = None
    attachment_id: str | None = Field(default=None, alias="attachmentId")
    size: int = 0


class MessagePart(BaseModel):
    """Node of the Gmail `payload` tree."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    mime_type: str = Field(default="", alias="mimeType")
    filename: str = ""
    headers: list[MessageHeader] = Field(default_factory=list)
    body: PartBody = Field(default_factory=PartBody)
    parts: list[MessagePart] = Field(default_factory=list)

    @property
    def kind(self) -> PartKind:
        return classify_mime_type(self.mime_type)

    def header(self, name: str) -> str | None:
        """Value of the first header named exactly `name`."""
        for header in self.headers:
            if header.name == name:
                return header.value
        return None


class EmailAddress(BaseModel):
    """A parsed address header segment."""

    name: str = Field(description="Display name, or the address when none is given")
    address: str = Field(description="Email address")


class Attachment(BaseModel):
    """Attachment metadata, with `data` filled once the payload is fetched."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(alias="mimeType")
    filename: str = ""
    attachment_id: str | None = Field(default=None, alias="attachmentId")
    size: int = 0
    data: bytes | None = Field(default=None, description="Decoded attachment bytes")


class ParsedMessage(BaseModel):
    """A Gmail message plus the fields derived from its headers and payload.

    Provider fields that are not modelled here (threadId, snippet, ...) are kept
    as extra attributes so `to_dict()` still returns the full record.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(description="Gmail message ID")
    label_ids: list[str] | None = Field(default=None, alias="labelIds")
    payload: dict[str, Any] | None = None

    history_type: str = Field(default="", alias="historyType")
    from_: EmailAddress | None = Field(default=None, alias="from")
    to: list[EmailAddress] | None = None
    cc: list[EmailAddress] | None = None
    bcc: list[EmailAddress] | None = None
    subject: str | None = None
    date: str | None = None
    body_text: str | None = Field(default=None, alias="bodyText")
    body_html: str | None = Field(default=None, alias="bodyHtml")
    attachments: list[Attachment] = Field(default_factory=list)
    not_found: bool | None = Field(default=None, alias="notFound")

    def to_dict(self) -> dict[str, Any]:
        """Render the record with Gmail's camelCase keys, omitting absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
