"""Outbound messaging: typed payloads and the dispatcher."""

from wa_gateway.messaging.dispatcher import (
    OutboundDispatcher,
    decode_inline_media,
    normalize_recipient,
)
from wa_gateway.messaging.payloads import (
    AudioPayload,
    ContactCard,
    ContactPayload,
    DocumentPayload,
    ImagePayload,
    OutboundPayload,
    TextPayload,
    VideoPayload,
)

__all__ = [
    "OutboundDispatcher",
    "normalize_recipient",
    "decode_inline_media",
    "OutboundPayload",
    "TextPayload",
    "ImagePayload",
    "VideoPayload",
    "AudioPayload",
    "DocumentPayload",
    "ContactPayload",
    "ContactCard",
]
