"""
Pairing Code Cache

Holds the most recent pairing artifact per session until a successful
connect consumes it. Each session's state machine is the only writer for its
id; status requests read concurrently.
"""

from typing import Optional


class PairingCodeCache:
    """
    Latest-wins pairing artifact cache.

    Reads and writes never suspend, so on a single event loop every call is
    atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._artifacts: dict[str, str] = {}

    def set(self, session_id: str, artifact: str) -> None:
        """Store an artifact, replacing any earlier one for the session."""
        self._artifacts[session_id] = artifact

    def get(self, session_id: str) -> Optional[str]:
        return self._artifacts.get(session_id)

    def clear(self, session_id: str) -> None:
        """Drop the session's artifact. Idempotent."""
        self._artifacts.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)
