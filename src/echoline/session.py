"""SessionSync: the primary public API entry point."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
from ulid import ULID

from echoline.events.bus import EventBus, Handler, SyncEvent
from echoline.models.config import SyncConfig
from echoline.projection.actions import Action, ChildInit, Clear, Init
from echoline.projection.reducer import reduce
from echoline.projection.state import INITIAL_STATE, ProjectionState
from echoline.projection.view import ProjectionView
from echoline.sync.hydration import HydrationLoader
from echoline.sync.supervisor import EventStreamSupervisor
from echoline.transport.base import SnapshotSource, Transport
from echoline.transport.snapshot import HttpSnapshotSource
from echoline.transport.sse import SseTransport


def make_id(prefix: str) -> str:
    """
    Generate a ULID-based sortable identifier.

    Args:
        prefix: Short prefix for readability (e.g. ``"sub"``, ``"conn"``).

    Returns:
        ID string in the format ``"{prefix}_{ulid}"``.
    """
    return f"{prefix}_{ULID()}"


class SessionSync:
    """
    Keeps a local, read-only projection of one remote session up to date.

    On :meth:`subscribe` the projection is cleared, a snapshot fetch and the
    live event stream start concurrently, and every decoded event is folded
    into an immutable :class:`~echoline.projection.ProjectionState`. Readers
    use :attr:`view`, whose derived collections are memoised until the state
    they were computed from is replaced.

    Usage::

        async with SessionSync.open("ses_123") as sync:
            sync.subscribe_events(SyncEvent.STATE_CHANGED, on_change)
            ...
            for message in sync.view.messages:
                print(message.id, sync.view.parts_for_message(message.id))

        # Manual lifecycle
        sync = SessionSync()
        sync.subscribe("ses_123")
        ...
        await sync.close()

    Switching sessions is a single :meth:`subscribe` call: the previous
    subscription is torn down first and no late callback from it can reach
    the new projection.
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        transport: Transport | None = None,
        snapshot_source: SnapshotSource | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config or SyncConfig()
        self._event_bus = event_bus or EventBus()
        self._client: httpx.AsyncClient | None = None
        if transport is None or snapshot_source is None:
            self._client = httpx.AsyncClient()
        self._transport = transport or SseTransport(self._client, self._config.endpoint)
        self._snapshot_source = snapshot_source or HttpSnapshotSource(
            self._client, self._config.endpoint, self._config.hydration
        )

        self._state: ProjectionState = INITIAL_STATE
        self._view = ProjectionView(lambda: self._state)
        self._session_id: str | None = None
        self._subscription_id: str | None = None
        self._epoch = 0
        self._hydration_task: asyncio.Task[None] | None = None
        self._loader = HydrationLoader(
            self._snapshot_source, self._config.hydration, self._event_bus
        )
        self._supervisor = EventStreamSupervisor(
            self._transport,
            self.dispatch,
            self._config.reconnect,
            self._event_bus,
            id_generator=make_id,
        )
        self._closed = False
        self._logger = structlog.get_logger("echoline.session")

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        session_id: str,
        *,
        config: SyncConfig | None = None,
        transport: Transport | None = None,
        snapshot_source: SnapshotSource | None = None,
        event_bus: EventBus | None = None,
    ) -> AsyncGenerator[SessionSync, None]:
        """
        Subscribe to *session_id* for the duration of an ``async with`` block.

        The subscription is torn down and any owned HTTP client closed when
        the block exits, even on exception.

        Yields:
            A subscribed SessionSync.
        """
        sync = cls(
            config=config,
            transport=transport,
            snapshot_source=snapshot_source,
            event_bus=event_bus,
        )
        try:
            sync.subscribe(session_id)
            yield sync
        finally:
            await sync.close()

    # ── Subscription lifecycle ────────────────────────────────────────────────

    def subscribe(self, session_id: str) -> None:
        """
        Start syncing *session_id*.

        Any previous subscription is torn down first. Must be called from a
        running event loop; hydration and the stream connection start
        concurrently as background tasks.

        Raises:
            RuntimeError: If the instance has been closed.
        """
        if self._closed:
            raise RuntimeError("SessionSync is closed")
        if self._session_id is not None:
            self.unsubscribe()

        self._epoch += 1
        self._session_id = session_id
        self._subscription_id = make_id("sub")
        self._logger = structlog.get_logger("echoline.session").bind(
            session_id=session_id, subscription_id=self._subscription_id
        )
        self.dispatch(Clear())

        epoch = self._epoch
        loop = asyncio.get_running_loop()
        self._hydration_task = loop.create_task(
            self._hydrate(session_id, epoch), name=f"echoline-hydrate-{session_id}"
        )
        self._supervisor.start(session_id)

        self._event_bus.publish(
            SyncEvent.SUBSCRIBED,
            {"session_id": session_id, "subscription_id": self._subscription_id},
        )
        self._logger.info("session_subscribed")

    def unsubscribe(self) -> None:
        """
        Stop syncing the current session and reset the projection.

        Synchronous and idempotent.
        """
        session_id = self._session_id
        if session_id is None:
            return
        self._supervisor.stop()
        if self._hydration_task is not None and not self._hydration_task.done():
            self._hydration_task.cancel()
        self._hydration_task = None
        self._epoch += 1
        self.dispatch(Clear())

        subscription_id = self._subscription_id or ""
        self._session_id = None
        self._subscription_id = None
        self._event_bus.publish(
            SyncEvent.UNSUBSCRIBED,
            {"session_id": session_id, "subscription_id": subscription_id},
        )
        self._logger.info("session_unsubscribed")

    def retry_connection(self) -> None:
        """Reconnect immediately with a fresh retry budget, e.g. after exhaustion."""
        self._supervisor.retry()

    async def hydrate_child(self, child_id: str) -> bool:
        """
        Seed the projection of child session *child_id* from its snapshot.

        Returns:
            True if a snapshot was applied, False if there is no active
            subscription, the fetch failed, or the subscription changed
            while the fetch was in flight.
        """
        session_id = self._session_id
        if session_id is None:
            return False
        epoch = self._epoch
        snapshot = await self._loader.load_child(session_id, child_id)
        if snapshot is None or epoch != self._epoch:
            return False
        self.dispatch(
            ChildInit(
                child_id=child_id,
                messages=tuple(snapshot.messages),
                parts=tuple(snapshot.parts),
            )
        )
        return True

    async def wait_until_hydrated(self) -> None:
        """Wait for the current snapshot fetch, if any, to settle."""
        task = self._hydration_task
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        """
        Tear down the subscription and release the owned HTTP client.

        Injected transports and snapshot sources are left for their owner to
        close.
        """
        if self._closed:
            return
        self.unsubscribe()
        self._closed = True
        if self._client is not None:
            await self._client.aclose()
        self._logger.info("session_sync_closed")

    async def __aenter__(self) -> SessionSync:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ── Projection ────────────────────────────────────────────────────────────

    def dispatch(self, action: Action) -> None:
        """
        Fold *action* into the projection.

        Publishes :attr:`SyncEvent.STATE_CHANGED` only when the reducer
        produced a new state.
        """
        state = reduce(self._state, action)
        if state is self._state:
            return
        self._state = state
        self._event_bus.publish(
            SyncEvent.STATE_CHANGED,
            {"session_id": self._session_id or "", "action": type(action).__name__},
        )

    async def _hydrate(self, session_id: str, epoch: int) -> None:
        snapshot = await self._loader.load(session_id)
        if snapshot is None or epoch != self._epoch:
            return
        self.dispatch(Init(messages=tuple(snapshot.messages), parts=tuple(snapshot.parts)))

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def session_id(self) -> str | None:
        """The subscribed session ID, or None."""
        return self._session_id

    @property
    def state(self) -> ProjectionState:
        """The current immutable projection."""
        return self._state

    @property
    def view(self) -> ProjectionView:
        """Memoised read accessors over the current projection."""
        return self._view

    @property
    def event_bus(self) -> EventBus:
        """The event bus for this instance. Subscribe to receive lifecycle events."""
        return self._event_bus

    @property
    def supervisor(self) -> EventStreamSupervisor:
        return self._supervisor

    def subscribe_events(self, event: SyncEvent, handler: Handler) -> None:
        """Shorthand for ``self.event_bus.subscribe(event, handler)``."""
        self._event_bus.subscribe(event, handler)

    def unsubscribe_events(self, event: SyncEvent, handler: Handler) -> None:
        self._event_bus.unsubscribe(event, handler)
