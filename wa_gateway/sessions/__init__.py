"""
Sessions Package - Session Lifecycle Manager

Per-session connection state machines, the registry that owns them, the
reconnect policy, the pairing code cache and credential persistence.
"""

from wa_gateway.sessions.credentials import (
    CredentialStore,
    FileCredentialStore,
    InMemoryCredentialStore,
    RedisCredentialStore,
    create_credential_store,
)
from wa_gateway.sessions.inbound import InboundMessageLog
from wa_gateway.sessions.machine import ConnectionStateMachine
from wa_gateway.sessions.models import Identity, SessionSnapshot, SessionState
from wa_gateway.sessions.pairing import PairingCodeCache
from wa_gateway.sessions.registry import SessionRegistry
from wa_gateway.sessions.retry import RetryAfter, RetryPolicy, Stop, TERMINAL_REASONS

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "RedisCredentialStore",
    "InMemoryCredentialStore",
    "create_credential_store",
    "InboundMessageLog",
    "ConnectionStateMachine",
    "Identity",
    "SessionSnapshot",
    "SessionState",
    "PairingCodeCache",
    "SessionRegistry",
    "RetryPolicy",
    "RetryAfter",
    "Stop",
    "TERMINAL_REASONS",
]
