"""Outbound HTTP clients."""

from wa_gateway.clients.http import (
    HttpMediaFetcher,
    MediaFetcher,
    create_http_client,
)

__all__ = ["HttpMediaFetcher", "MediaFetcher", "create_http_client"]
