"""Transports for the live event stream and snapshot endpoints."""

from echoline.transport.base import (
    Connection,
    EcholineError,
    SnapshotError,
    SnapshotSource,
    Transport,
    TransportError,
)
from echoline.transport.snapshot import HttpSnapshotSource
from echoline.transport.sse import SseConnection, SseTransport, iter_sse_data

__all__ = [
    "Connection",
    "EcholineError",
    "HttpSnapshotSource",
    "SnapshotError",
    "SnapshotSource",
    "SseConnection",
    "SseTransport",
    "Transport",
    "TransportError",
    "iter_sse_data",
]
