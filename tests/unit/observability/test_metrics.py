"""
Tests for Prometheus metrics.

Counters are process-global, so assertions compare before/after values.
"""

from prometheus_client import REGISTRY

from wa_gateway.observability.metrics import (
    generate_metrics,
    record_outbound_message,
    record_reconnect_attempt,
    record_state_transition,
    record_terminal_disconnect,
    set_live_sessions,
)


def sample(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestSessionMetrics:

    def test_state_transition_counter(self) -> None:
        labels = {"from_state": "initializing", "to_state": "awaiting_pairing"}
        before = sample("wa_gateway_session_state_transitions_total", labels)

        record_state_transition("initializing", "awaiting_pairing")

        assert sample("wa_gateway_session_state_transitions_total", labels) == before + 1

    def test_reconnect_counter(self) -> None:
        before = sample("wa_gateway_reconnect_attempts_total")

        record_reconnect_attempt()

        assert sample("wa_gateway_reconnect_attempts_total") == before + 1

    def test_terminal_disconnect_labels(self) -> None:
        rejected = {"reason": "401"}
        exhausted = {"reason": "exhausted"}
        before_rejected = sample("wa_gateway_terminal_disconnects_total", rejected)
        before_exhausted = sample("wa_gateway_terminal_disconnects_total", exhausted)

        record_terminal_disconnect(401, exhausted=False)
        record_terminal_disconnect(428, exhausted=True)

        assert sample("wa_gateway_terminal_disconnects_total", rejected) == before_rejected + 1
        assert sample("wa_gateway_terminal_disconnects_total", exhausted) == before_exhausted + 1

    def test_live_sessions_gauge(self) -> None:
        set_live_sessions(3)

        assert sample("wa_gateway_sessions_live") == 3


class TestOutboundMetrics:

    def test_outbound_counter(self) -> None:
        labels = {"kind": "image", "outcome": "not_connected"}
        before = sample("wa_gateway_outbound_messages_total", labels)

        record_outbound_message("image", "not_connected")

        assert sample("wa_gateway_outbound_messages_total", labels) == before + 1

    def test_exposition_format(self) -> None:
        record_outbound_message("text", "success")

        text = generate_metrics()

        assert "# TYPE wa_gateway_outbound_messages_total counter" in text
        assert "wa_gateway_sessions_live" in text
