"""Typed payload definitions for each SyncEvent.

Usage example::

    from echoline.events.bus import EventBus, SyncEvent
    from echoline.events.payloads import DisconnectedPayload

    def on_lost(event: SyncEvent, payload: DisconnectedPayload) -> None:
        print(f"reconnecting in {payload['delay']:.1f}s (attempt {payload['attempt']})")

    bus.subscribe(SyncEvent.DISCONNECTED, on_lost)  # type: ignore[arg-type]
"""

from __future__ import annotations

from typing import TypedDict

# ── Subscription lifecycle ────────────────────────────────────────────────────


class SubscriptionPayload(TypedDict):
    """Payload for :attr:`SyncEvent.SUBSCRIBED` and :attr:`SyncEvent.UNSUBSCRIBED`."""

    session_id: str
    subscription_id: str
    """ULID-based id of this subscription, also bound into log records."""


# ── Projection ────────────────────────────────────────────────────────────────


class StateChangedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.STATE_CHANGED`."""

    session_id: str
    action: str
    """Class name of the action that produced the new projection."""


# ── Connection lifecycle ──────────────────────────────────────────────────────


class ConnectedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.CONNECTED`."""

    session_id: str
    connection_id: str


class DisconnectedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.DISCONNECTED`."""

    session_id: str
    error: str | None
    attempt: int
    """1-based count of consecutive failures, including this one."""
    delay: float
    """Seconds until the scheduled reconnect."""


class ConnectionExhaustedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.CONNECTION_EXHAUSTED`."""

    session_id: str
    error: str
    attempts: int


# ── Snapshot ──────────────────────────────────────────────────────────────────


class HydratedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.HYDRATED`."""

    session_id: str
    child_id: str | None
    """Set when a child projection was seeded via ``hydrate_child()``."""
    messages: int
    parts: int


class HydrationFailedPayload(TypedDict):
    """Payload for :attr:`SyncEvent.HYDRATION_FAILED`."""

    session_id: str
    child_id: str | None
    error: str
