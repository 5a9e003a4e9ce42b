"""Transport contracts and exceptions shared by the stream and snapshot clients."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

# ── Exceptions ─────────────────────────────────────────────────────────────────


class EcholineError(Exception):
    """Base class for Echoline errors."""


class TransportError(EcholineError):
    """Raised when the event stream cannot be opened or breaks while reading."""

    def __init__(self, session_id: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Event stream for {session_id!r} failed: {reason}")
        self.session_id = session_id
        self.reason = reason
        self.status_code = status_code


class SnapshotError(EcholineError):
    """Raised when a snapshot cannot be fetched or decoded."""

    def __init__(self, session_id: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Snapshot for {session_id!r} failed: {reason}")
        self.session_id = session_id
        self.reason = reason
        self.status_code = status_code


# ── Contracts ──────────────────────────────────────────────────────────────────


@runtime_checkable
class Connection(Protocol):
    """One open event stream. Iterating yields raw frame payloads in delivery order."""

    def __aiter__(self) -> AsyncIterator[str]: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """Opens the live event stream for a session."""

    async def connect(self, session_id: str) -> Connection:
        """
        Open the stream.

        Raises:
            TransportError: If the handshake fails.
        """
        ...


@runtime_checkable
class SnapshotSource(Protocol):
    """
    Serves point-in-time snapshots of a session.

    The live HTTP API is one implementation; an archive read-model serving
    terminated sessions in the same shape is another.
    """

    async def fetch_messages(self, session_id: str) -> Any:
        """Return the decoded snapshot body for *session_id*."""
        ...

    async def fetch_child(self, session_id: str, child_id: str) -> Any:
        """Return the decoded snapshot body for one child of *session_id*."""
        ...
