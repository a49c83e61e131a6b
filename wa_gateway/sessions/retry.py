"""
Reconnect Policy

Pure decision function mapping a disconnect reason and the attempts already
made in the current episode to either Stop or RetryAfter.

The policy holds no state: the attempt counter lives on the session and is
passed in, so every outcome can be checked from a (reason, count) table.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from wa_gateway.transport.base import DisconnectReason

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_SECONDS = 3.0

TERMINAL_REASONS: frozenset[int] = frozenset(
    {
        DisconnectReason.LOGGED_OUT,
        DisconnectReason.BAD_SESSION,
        DisconnectReason.CONNECTION_REPLACED,
    }
)


@dataclass(frozen=True)
class Stop:
    """
    Do not reconnect.

    Attributes:
        terminal: True when the reason itself forbids reconnecting,
            False when the attempt budget is spent
    """

    terminal: bool

    @property
    def exhausted(self) -> bool:
        return not self.terminal


@dataclass(frozen=True)
class RetryAfter:
    """Reconnect after `delay` seconds; `attempt` is the new retry count."""

    delay: float
    attempt: int


Decision = Union[Stop, RetryAfter]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded fixed-delay reconnect policy.

    Example:
        >>> policy = RetryPolicy(max_retries=2, delay_seconds=3.0)
        >>> policy.decide(428, 0)
        RetryAfter(delay=3.0, attempt=1)
        >>> policy.decide(428, 2)
        Stop(terminal=False)
        >>> policy.decide(401, 0)
        Stop(terminal=True)
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    terminal_reasons: frozenset[int] = field(default=TERMINAL_REASONS)

    @classmethod
    def with_extra_terminal_codes(
        cls,
        codes: Iterable[int],
        max_retries: int = DEFAULT_MAX_RETRIES,
        delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
    ) -> "RetryPolicy":
        """Build a policy whose terminal set is the default plus `codes`."""
        return cls(
            max_retries=max_retries,
            delay_seconds=delay_seconds,
            terminal_reasons=TERMINAL_REASONS | frozenset(codes),
        )

    def is_terminal(self, reason: Optional[int]) -> bool:
        return reason is not None and reason in self.terminal_reasons

    def decide(self, reason: Optional[int], retry_count: int) -> Decision:
        """
        Decide what to do after a disconnect.

        Args:
            reason: Disconnect status code; None is treated as transient
            retry_count: Attempts already made in this disconnect episode

        Returns:
            Stop(terminal=True) for a terminal reason, Stop(terminal=False)
            when retry_count has reached max_retries, else RetryAfter.
        """
        if retry_count < 0:
            raise ValueError("retry_count must be non-negative")
        if self.is_terminal(reason):
            return Stop(terminal=True)
        if retry_count >= self.max_retries:
            return Stop(terminal=False)
        return RetryAfter(delay=self.delay_seconds, attempt=retry_count + 1)
