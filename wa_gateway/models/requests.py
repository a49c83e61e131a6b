"""
Request Models

Pydantic models for API request validation. Message requests combine the
routing fields (session and recipient) with one typed payload, so the same
payload classes flow from the HTTP layer into the dispatcher.

Anti-Patterns Avoided:
- Optional fields use Optional[T] with explicit None default
- Validation errors have clear context messages
"""

from typing import Annotated, Union

from pydantic import BaseModel, Field, field_validator

from wa_gateway.messaging.payloads import (
    AudioPayload,
    ContactPayload,
    DocumentPayload,
    ImagePayload,
    TextPayload,
    VideoPayload,
)

SESSION_ID_PATTERN = r"^[A-Za-z0-9_.@+-]{1,128}$"


# =============================================================================
# Session Requests
# =============================================================================


class CreateSessionRequest(BaseModel):
    """
    Session create request.

    Attributes:
        session_id: Caller-chosen id; also the credential storage key, so
            path separators are rejected
    """

    session_id: str = Field(
        ...,
        pattern=SESSION_ID_PATTERN,
        description="Session identifier",
        examples=["shop-42"],
    )

    @field_validator("session_id")
    @classmethod
    def reject_relative_components(cls, v: str) -> str:
        if v in {".", ".."}:
            raise ValueError("session_id must not be '.' or '..'")
        return v


# =============================================================================
# Message Requests
# =============================================================================


class MessageTarget(BaseModel):
    """Routing fields shared by every send request."""

    session_id: str = Field(..., min_length=1, description="Session to send through")
    to: str = Field(
        ...,
        min_length=1,
        description="Recipient phone number or fully qualified address",
        examples=["15551234567", "15551234567@s.whatsapp.net"],
    )


class TextMessageRequest(MessageTarget, TextPayload):
    pass


class ImageMessageRequest(MessageTarget, ImagePayload):
    pass


class VideoMessageRequest(MessageTarget, VideoPayload):
    pass


class AudioMessageRequest(MessageTarget, AudioPayload):
    pass


class DocumentMessageRequest(MessageTarget, DocumentPayload):
    pass


class ContactMessageRequest(MessageTarget, ContactPayload):
    pass


MessageRequest = Union[
    TextMessageRequest,
    ImageMessageRequest,
    VideoMessageRequest,
    AudioMessageRequest,
    DocumentMessageRequest,
    ContactMessageRequest,
]

SendMessageRequest = Annotated[MessageRequest, Field(discriminator="type")]
"""Body of POST /message/send; the `type` field selects the payload kind."""
