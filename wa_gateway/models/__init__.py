"""API request and response models."""

from wa_gateway.models.requests import (
    AudioMessageRequest,
    ContactMessageRequest,
    CreateSessionRequest,
    DocumentMessageRequest,
    ImageMessageRequest,
    MessageRequest,
    MessageTarget,
    SendMessageRequest,
    TextMessageRequest,
    VideoMessageRequest,
)
from wa_gateway.models.responses import (
    CreateSessionResponse,
    DetailResponse,
    ErrorResponse,
    MessageResponse,
    PairingStatusResponse,
    SessionListResponse,
    SessionStatusResponse,
    SessionSummary,
)

__all__ = [
    "CreateSessionRequest",
    "MessageTarget",
    "TextMessageRequest",
    "ImageMessageRequest",
    "VideoMessageRequest",
    "AudioMessageRequest",
    "DocumentMessageRequest",
    "ContactMessageRequest",
    "MessageRequest",
    "SendMessageRequest",
    "CreateSessionResponse",
    "PairingStatusResponse",
    "SessionStatusResponse",
    "SessionSummary",
    "SessionListResponse",
    "DetailResponse",
    "MessageResponse",
    "ErrorResponse",
]
