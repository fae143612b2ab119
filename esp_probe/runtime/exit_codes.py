"""Common exit reasons for esp_probe client sessions."""

from __future__ import annotations

from enum import Enum


class ExitCode(str, Enum):
    """Enumeration of session termination reasons."""

    COMPLETED = "completed"
    SAMPLES_COLLECTED = "samples_collected"
    PEER_CLOSED = "peer_closed"
    CONNECT_FAILED = "connect_failed"
    CONNECTION_ERROR = "connection_error"
    RECONNECT_LIMIT_REACHED = "reconnect_limit_reached"
    INTERRUPTED = "interrupted"
    UNRESOLVED = "unresolved"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


__all__ = ["ExitCode"]
