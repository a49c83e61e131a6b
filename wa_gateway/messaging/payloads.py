"""
Outbound Payload Models

Typed payloads accepted by the dispatcher. Media payloads carry their bytes
either inline (base64, optionally as a data URL) or as an http(s) URL to
download before sending.

Pattern: Discriminated union on the `type` field (Pydantic)
"""

from abc import ABC, abstractmethod
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

PayloadKind = Literal["text", "image", "video", "audio", "document", "contact"]


def is_remote_source(source: str) -> bool:
    """True when a media source is a URL rather than inline base64."""
    return source.startswith(("http://", "https://"))


class TextPayload(BaseModel):
    type: Literal["text"] = "text"
    message: str = Field(..., min_length=1, description="Message body")


class _MediaPayload(BaseModel, ABC):
    """Base for payloads that carry one media item."""

    @property
    @abstractmethod
    def media_source(self) -> str:
        """URL or base64 data of the media item."""


class ImagePayload(_MediaPayload):
    type: Literal["image"] = "image"
    image: str = Field(..., min_length=1, description="Image URL or base64 data")
    caption: Optional[str] = None

    @property
    def media_source(self) -> str:
        return self.image


class VideoPayload(_MediaPayload):
    type: Literal["video"] = "video"
    video: str = Field(..., min_length=1, description="Video URL or base64 data")
    caption: Optional[str] = None

    @property
    def media_source(self) -> str:
        return self.video


class AudioPayload(_MediaPayload):
    type: Literal["audio"] = "audio"
    audio: str = Field(..., min_length=1, description="Audio URL or base64 data")
    mimetype: Optional[str] = None
    ptt: bool = Field(default=True, description="Deliver as a voice note")

    @property
    def media_source(self) -> str:
        return self.audio


class DocumentPayload(_MediaPayload):
    type: Literal["document"] = "document"
    document: str = Field(..., min_length=1, description="Document URL or base64 data")
    filename: Optional[str] = None
    mimetype: Optional[str] = None

    @property
    def media_source(self) -> str:
        return self.document


class ContactCard(BaseModel):
    name: str = Field(..., min_length=1)
    number: str = Field(..., min_length=1)

    @field_validator("number")
    @classmethod
    def strip_number(cls, v: str) -> str:
        """Keep digits only; '+1 (555) 123-4567' becomes '15551234567'."""
        digits = "".join(ch for ch in v if ch.isdigit())
        if not digits:
            raise ValueError("contact number must contain digits")
        return digits

    def to_vcard(self) -> str:
        return (
            "BEGIN:VCARD\n"
            "VERSION:3.0\n"
            f"FN:{self.name}\n"
            f"TEL;type=CELL;type=VOICE;waid={self.number}:{self.number}\n"
            "END:VCARD"
        )


class ContactPayload(BaseModel):
    type: Literal["contact"] = "contact"
    contact: ContactCard


OutboundPayload = Annotated[
    Union[TextPayload, ImagePayload, VideoPayload, AudioPayload, DocumentPayload, ContactPayload],
    Field(discriminator="type"),
]

MediaPayload = Union[ImagePayload, VideoPayload, AudioPayload, DocumentPayload]
