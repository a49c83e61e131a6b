"""
Prometheus Metrics Module

Session lifecycle and outbound messaging metrics.

Metrics Provided:
- Session state transitions (counter, by from/to state)
- Reconnect attempts (counter)
- Terminal disconnects (counter, by reason)
- Live sessions (gauge)
- Outbound messages (counter, by kind and outcome)
"""

from typing import Any, Callable, Optional

from prometheus_client import Counter, Gauge, generate_latest, make_asgi_app

# =============================================================================
# Constants
# =============================================================================

METRIC_SESSION_TRANSITIONS = "wa_gateway_session_state_transitions_total"
METRIC_RECONNECT_ATTEMPTS = "wa_gateway_reconnect_attempts_total"
METRIC_TERMINAL_DISCONNECTS = "wa_gateway_terminal_disconnects_total"
METRIC_SESSIONS_LIVE = "wa_gateway_sessions_live"
METRIC_MESSAGES_SENT = "wa_gateway_outbound_messages_total"


# =============================================================================
# Session Metrics
# =============================================================================

SESSION_STATE_TRANSITIONS = Counter(
    name=METRIC_SESSION_TRANSITIONS,
    documentation="Total number of session state machine transitions",
    labelnames=["from_state", "to_state"],
)

RECONNECT_ATTEMPTS = Counter(
    name=METRIC_RECONNECT_ATTEMPTS,
    documentation="Total number of scheduled reconnect attempts",
)

TERMINAL_DISCONNECTS = Counter(
    name=METRIC_TERMINAL_DISCONNECTS,
    documentation="Total number of sessions terminated by the network or retry exhaustion",
    labelnames=["reason"],
)

SESSIONS_LIVE = Gauge(
    name=METRIC_SESSIONS_LIVE,
    documentation="Number of sessions currently held in the registry",
)

OUTBOUND_MESSAGES = Counter(
    name=METRIC_MESSAGES_SENT,
    documentation="Total number of outbound send attempts",
    labelnames=["kind", "outcome"],
)


def record_state_transition(from_state: str, to_state: str) -> None:
    """Record a session state machine transition."""
    SESSION_STATE_TRANSITIONS.labels(from_state=from_state, to_state=to_state).inc()


def record_reconnect_attempt() -> None:
    """Record a scheduled reconnect."""
    RECONNECT_ATTEMPTS.inc()


def record_terminal_disconnect(reason: Optional[int], exhausted: bool) -> None:
    """
    Record a terminal disconnect.

    Args:
        reason: Disconnect status code (None when unknown)
        exhausted: True when the session ended because retries ran out
    """
    if exhausted:
        label = "exhausted"
    else:
        label = str(int(reason)) if reason is not None else "none"
    TERMINAL_DISCONNECTS.labels(reason=label).inc()


def set_live_sessions(count: int) -> None:
    """Set the live sessions gauge."""
    SESSIONS_LIVE.set(count)


def record_outbound_message(kind: str, outcome: str) -> None:
    """
    Record an outbound send attempt.

    Args:
        kind: Payload kind (text, image, video, audio, document, contact)
        outcome: success, not_connected, fetch_error or send_error
    """
    OUTBOUND_MESSAGES.labels(kind=kind, outcome=outcome).inc()


# =============================================================================
# Metrics Endpoint
# =============================================================================


def get_metrics_app() -> Callable[..., Any]:
    """ASGI app serving the Prometheus exposition format at /metrics."""
    return make_asgi_app()


def generate_metrics() -> str:
    """Generate Prometheus metrics text format."""
    return generate_latest().decode("utf-8")
