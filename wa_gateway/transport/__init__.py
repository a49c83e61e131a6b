"""
Transport Package

The TransportClient port, its event types, a fake adapter for development
and tests, and the factory loader used by the application.
"""

import importlib

from wa_gateway.transport.base import (
    ConnectionClosed,
    ConnectionOpened,
    Connecting,
    CredentialsUpdated,
    DisconnectReason,
    MessageReceived,
    PairingCodeReceived,
    TransportClient,
    TransportEvent,
    TransportFactory,
    TransportListener,
    TransportOptions,
)
from wa_gateway.transport.fake import FakeTransport, FakeTransportFactory


def load_transport_factory(path: str) -> TransportFactory:
    """
    Resolve a 'package.module:Attribute' path to a transport factory.

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the attribute does not exist
        TypeError: If the attribute is not callable
    """
    module_name, _, attr = path.partition(":")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    if not callable(factory):
        raise TypeError(f"Transport factory {path} is not callable")
    return factory


__all__ = [
    "DisconnectReason",
    "PairingCodeReceived",
    "ConnectionOpened",
    "ConnectionClosed",
    "Connecting",
    "CredentialsUpdated",
    "MessageReceived",
    "TransportEvent",
    "TransportListener",
    "TransportOptions",
    "TransportClient",
    "TransportFactory",
    "FakeTransport",
    "FakeTransportFactory",
    "load_transport_factory",
]
