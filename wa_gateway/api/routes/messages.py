"""
Messages Router

Outbound send endpoints. POST /message/send takes any payload kind selected
by its `type` field; the per-kind endpoints accept the same bodies with the
`type` field optional.

Every endpoint requires the session to be Connected; otherwise the request
fails with 400 NOT_CONNECTED and nothing is sent.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends

from wa_gateway.api.deps import get_dispatcher
from wa_gateway.messaging.dispatcher import OutboundDispatcher
from wa_gateway.models.requests import (
    AudioMessageRequest,
    ContactMessageRequest,
    DocumentMessageRequest,
    ImageMessageRequest,
    MessageRequest,
    TextMessageRequest,
    VideoMessageRequest,
)
from wa_gateway.models.responses import ErrorResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/message",
    tags=["Messages"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request or session not connected"},
        502: {"model": ErrorResponse, "description": "Media download or transport send failed"},
    },
)

SENT_MESSAGES = {
    "text": "Message sent",
    "image": "Image sent",
    "video": "Video sent",
    "audio": "Audio sent",
    "document": "Document sent",
    "contact": "Contact sent",
}


async def _send(dispatcher: OutboundDispatcher, request: MessageRequest) -> MessageResponse:
    message_id = await dispatcher.send(request.session_id, request.to, request)
    return MessageResponse(message=SENT_MESSAGES[request.type], message_id=message_id)


@router.post("/send", response_model=MessageResponse)
async def send_message(
    request: Annotated[MessageRequest, Body(discriminator="type")],
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    """Send any payload kind, selected by `type`."""
    return await _send(dispatcher, request)


@router.post("/text", response_model=MessageResponse)
async def send_text(
    request: TextMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    return await _send(dispatcher, request)


@router.post("/image", response_model=MessageResponse)
async def send_image(
    request: ImageMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    return await _send(dispatcher, request)


@router.post("/video", response_model=MessageResponse)
async def send_video(
    request: VideoMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    return await _send(dispatcher, request)


@router.post("/audio", response_model=MessageResponse)
async def send_audio(
    request: AudioMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    """Audio is delivered as a voice note unless `ptt` is false."""
    return await _send(dispatcher, request)


@router.post("/document", response_model=MessageResponse)
async def send_document(
    request: DocumentMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    return await _send(dispatcher, request)


@router.post("/contact", response_model=MessageResponse)
async def send_contact(
    request: ContactMessageRequest,
    dispatcher: OutboundDispatcher = Depends(get_dispatcher),
) -> MessageResponse:
    return await _send(dispatcher, request)
