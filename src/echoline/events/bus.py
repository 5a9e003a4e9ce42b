"""In-process pub/sub event bus for projection and connection lifecycle events."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

import structlog

Handler = Callable[["SyncEvent", dict[str, Any]], None | Awaitable[None]]


class SyncEvent(StrEnum):
    """All event types published by Echoline components.

    Typed payload definitions for each event live in
    :mod:`echoline.events.payloads`.

    **Payload schemas by event:**

    ``SUBSCRIBED``, ``UNSUBSCRIBED``
        :class:`~echoline.events.payloads.SubscriptionPayload`:
        ``session_id: str``, ``subscription_id: str``

    ``STATE_CHANGED``
        :class:`~echoline.events.payloads.StateChangedPayload`:
        ``session_id: str``, ``action: str`` (the action class name).
        Published only when a dispatch produced a new projection.

    ``CONNECTED``
        :class:`~echoline.events.payloads.ConnectedPayload`:
        ``session_id: str``, ``connection_id: str``

    ``DISCONNECTED``
        :class:`~echoline.events.payloads.DisconnectedPayload`:
        ``session_id: str``, ``error: str | None``, ``attempt: int``,
        ``delay: float`` (seconds until the next attempt)

    ``CONNECTION_EXHAUSTED``
        :class:`~echoline.events.payloads.ConnectionExhaustedPayload`:
        ``session_id: str``, ``error: str``, ``attempts: int``.
        Automatic reconnection has stopped; offer a manual retry.

    ``HYDRATED``
        :class:`~echoline.events.payloads.HydratedPayload`:
        ``session_id: str``, ``child_id: str | None``, ``messages: int``, ``parts: int``

    ``HYDRATION_FAILED``
        :class:`~echoline.events.payloads.HydrationFailedPayload`:
        ``session_id: str``, ``child_id: str | None``, ``error: str``
    """

    # Subscription lifecycle
    SUBSCRIBED = "sync.subscribed"
    UNSUBSCRIBED = "sync.unsubscribed"

    # Projection
    STATE_CHANGED = "state.changed"

    # Connection lifecycle
    CONNECTED = "connection.opened"
    DISCONNECTED = "connection.lost"
    CONNECTION_EXHAUSTED = "connection.exhausted"

    # Snapshot
    HYDRATED = "hydration.completed"
    HYDRATION_FAILED = "hydration.failed"


class EventBus:
    """
    Simple in-process pub/sub event bus.

    Design decisions:
    - Sync handlers are called inline within ``publish()``.
    - Async handlers are scheduled via ``asyncio.create_task()`` (fire-and-forget).
    - Handler exceptions are logged but never propagate to the publisher, so a
      faulty subscriber can never interrupt frame dispatch.
    - Each ``SessionSync`` owns its own ``EventBus`` unless one is injected.

    Example::

        bus = EventBus()

        def on_change(event, payload):
            print(f"{payload['action']} applied to {payload['session_id']}")

        bus.subscribe(SyncEvent.STATE_CHANGED, on_change)
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._handlers: dict[SyncEvent, list[Handler]] = {}
        self._global_handlers: list[Handler] = []
        self._logger = logger or structlog.get_logger("echoline.events")

    def subscribe(self, event: SyncEvent, handler: Handler) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event: The event type to listen for.
            handler: Callable accepting ``(event, payload)``. May be sync or async.
        """
        self._handlers.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register a handler for ALL event types."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event: SyncEvent, handler: Handler) -> None:
        """Remove a previously registered handler. No-op if not found."""
        handlers = self._handlers.get(event, [])
        try:
            handlers.remove(handler)
        except ValueError:
            pass

    def publish(self, event: SyncEvent, payload: dict[str, Any]) -> None:
        """
        Publish an event to all registered handlers.

        Sync handlers are called immediately in registration order.
        Async handlers are scheduled as background tasks (non-blocking).
        Exceptions from any handler are logged and swallowed.

        Args:
            event: The event type to publish.
            payload: Event-specific data dictionary.
        """
        all_handlers = list(self._handlers.get(event, [])) + list(self._global_handlers)
        for handler in all_handlers:
            try:
                result = handler(event, payload)
                if asyncio.iscoroutine(result):
                    try:
                        loop = asyncio.get_running_loop()
                        _task = loop.create_task(result)  # noqa: RUF006
                    except RuntimeError:
                        # No running event loop, so the coroutine can never run
                        result.close()
            except Exception as exc:
                self._logger.error(
                    "event_handler_error",
                    event=str(event),
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(exc),
                )
