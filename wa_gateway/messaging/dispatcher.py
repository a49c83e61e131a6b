"""
Outbound Dispatcher

Validates that the target session is Connected, normalizes the recipient
address, resolves media and forwards the content to the session's transport.

Sends are not covered by the reconnect policy: a failed send is surfaced to
the caller as TransportSendError and never retried here.
"""

import base64
import binascii
from typing import Any, Optional, Union

from wa_gateway.clients.http import MediaFetcher
from wa_gateway.core.config import Settings, get_settings
from wa_gateway.core.exceptions import (
    GatewayException,
    GatewayValidationError,
    MediaFetchError,
    NotConnectedError,
    TransportSendError,
)
from wa_gateway.messaging.payloads import (
    AudioPayload,
    ContactPayload,
    DocumentPayload,
    ImagePayload,
    TextPayload,
    VideoPayload,
    is_remote_source,
)
from wa_gateway.observability.logging import get_logger, session_context
from wa_gateway.observability.metrics import record_outbound_message
from wa_gateway.sessions.registry import SessionRegistry

logger = get_logger(__name__)

DEFAULT_RECIPIENT_DOMAIN = "s.whatsapp.net"

Payload = Union[TextPayload, ImagePayload, VideoPayload, AudioPayload, DocumentPayload, ContactPayload]


def normalize_recipient(to: str, domain: str = DEFAULT_RECIPIENT_DOMAIN) -> str:
    """
    Canonical network address for a recipient.

    Fully qualified addresses (anything containing '@', including group
    addresses) are returned unchanged; bare identifiers get the domain
    appended, after dropping surrounding whitespace and a leading '+'.

    Example:
        >>> normalize_recipient("15551234567")
        '15551234567@s.whatsapp.net'
        >>> normalize_recipient("15551234567@s.whatsapp.net")
        '15551234567@s.whatsapp.net'

    Raises:
        GatewayValidationError: If the recipient is empty
    """
    to = to.strip()
    if "@" in to:
        return to
    to = to.lstrip("+")
    if not to:
        raise GatewayValidationError("Recipient is required", field="to")
    return f"{to}@{domain}"


def decode_inline_media(data: str, field: str, max_bytes: Optional[int] = None) -> bytes:
    """
    Decode base64 media, accepting an optional data URL prefix.

    Raises:
        GatewayValidationError: If the data is not valid base64 or too large
    """
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        decoded = base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise GatewayValidationError(f"Invalid base64 data in '{field}'", field=field) from e
    if not decoded:
        raise GatewayValidationError(f"Empty media in '{field}'", field=field)
    if max_bytes is not None and len(decoded) > max_bytes:
        raise GatewayValidationError(f"Media in '{field}' exceeds {max_bytes} bytes", field=field)
    return decoded


class OutboundDispatcher:
    """
    Sends typed payloads through Connected sessions.

    Args:
        registry: Session registry used to find the session's transport
        media_fetcher: Downloads media given by URL
        settings: Recipient domain, size cap and media defaults
    """

    def __init__(
        self,
        registry: SessionRegistry,
        media_fetcher: MediaFetcher,
        settings: Optional[Settings] = None,
    ) -> None:
        self._registry = registry
        self._fetcher = media_fetcher
        self._settings = settings if settings is not None else get_settings()

    def normalize(self, to: str) -> str:
        return normalize_recipient(to, self._settings.recipient_domain)

    async def send(self, session_id: str, to: str, payload: Payload) -> str:
        """
        Send one message.

        Args:
            session_id: Session to send through
            to: Recipient, bare identifier or fully qualified address
            payload: Typed message payload

        Returns:
            Message id assigned by the network

        Raises:
            NotConnectedError: Session unknown or not Connected (nothing is sent)
            GatewayValidationError: Bad recipient or inline media
            MediaFetchError: Media URL could not be downloaded
            TransportSendError: The transport rejected or failed the send
        """
        kind = payload.type
        with session_context(session_id):
            try:
                self._registry.connected_transport(session_id)
                jid = self.normalize(to)
                content = await self._build_content(payload)
                # The session may have dropped while media was downloading.
                transport = self._registry.connected_transport(session_id)
            except NotConnectedError:
                record_outbound_message(kind, "not_connected")
                raise
            except MediaFetchError:
                record_outbound_message(kind, "fetch_error")
                raise

            try:
                message_id = await transport.send(jid, content)
            except GatewayException as e:
                record_outbound_message(kind, "send_error")
                raise TransportSendError(session_id, e.message) from e
            except Exception as e:
                record_outbound_message(kind, "send_error")
                logger.error("transport send failed", kind=kind, error=str(e))
                raise TransportSendError(session_id, f"Send failed: {e}") from e

            record_outbound_message(kind, "success")
            logger.info("message sent", kind=kind, to=jid, message_id=message_id)
            return message_id

    async def _build_content(self, payload: Payload) -> dict[str, Any]:
        if isinstance(payload, TextPayload):
            return {"text": payload.message}
        if isinstance(payload, ContactPayload):
            return {
                "contacts": {
                    "displayName": payload.contact.name,
                    "contacts": [{"vcard": payload.contact.to_vcard()}],
                }
            }

        media = await self._resolve_media(payload.media_source, payload.type)
        if isinstance(payload, ImagePayload):
            return {"image": media, "caption": payload.caption or ""}
        if isinstance(payload, VideoPayload):
            return {"video": media, "caption": payload.caption or ""}
        if isinstance(payload, AudioPayload):
            return {
                "audio": media,
                "mimetype": payload.mimetype or self._settings.default_audio_mimetype,
                "ptt": payload.ptt,
            }
        return {
            "document": media,
            "fileName": payload.filename or self._settings.default_document_filename,
            "mimetype": payload.mimetype or self._settings.default_document_mimetype,
        }

    async def _resolve_media(self, source: str, field: str) -> bytes:
        if is_remote_source(source):
            return await self._fetcher.fetch(source)
        return decode_inline_media(source, field, self._settings.media_max_bytes)
