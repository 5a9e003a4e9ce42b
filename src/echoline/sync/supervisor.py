"""Connection supervisor: one live event stream per session, with bounded reconnects."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from echoline.events.bus import EventBus, SyncEvent
from echoline.models.config import ReconnectConfig
from echoline.projection.actions import Action, Connected, Disconnected, SessionError
from echoline.protocol.decoder import decode_frame
from echoline.transport.base import Connection, Transport, TransportError

EXHAUSTED_MESSAGE = "Max reconnection attempts reached"


def backoff_delay(attempt: int, config: ReconnectConfig) -> float:
    """
    Seconds to wait before reconnect attempt number *attempt* (1-based).

    ``min(base_delay * multiplier ** (attempt - 1), max_delay)``; with the
    defaults this yields 2.0, 3.0, 4.5, 6.75, 10.0, 10.0, ...
    """
    exponent = max(attempt - 1, 0)
    return min(config.base_delay * config.multiplier**exponent, config.max_delay)


class EventStreamSupervisor:
    """
    Keeps the event stream for one session open.

    Decoded frames are handed to *dispatch* in delivery order. Failures
    (handshake errors, a broken or closed stream, a ``session.error`` event)
    schedule a reconnect with exponential backoff until
    ``ReconnectConfig.max_retries`` consecutive failures, after which the
    supervisor reports :attr:`exhausted` and waits for :meth:`retry`.

    Every callback captures the epoch current when it was armed. :meth:`stop`
    and :meth:`retry` bump the epoch, which turns any late timer, handshake or
    reader step into a no-op.

    Must be driven from a running event loop.
    """

    def __init__(
        self,
        transport: Transport,
        dispatch: Callable[[Action], None],
        config: ReconnectConfig | None = None,
        event_bus: EventBus | None = None,
        decode: Callable[[str], Action | None] = decode_frame,
        id_generator: Callable[[str], str] | None = None,
    ) -> None:
        self._transport = transport
        self._dispatch = dispatch
        self._config = config or ReconnectConfig()
        self._event_bus = event_bus or EventBus()
        self._decode = decode
        self._id_generator = id_generator or _default_id_generator

        self._session_id: str | None = None
        self._epoch = 0
        self._attempt = 0
        self._connected = False
        self._exhausted = False
        self._timer: asyncio.TimerHandle | None = None
        self._reader: asyncio.Task[None] | None = None
        self._logger = structlog.get_logger("echoline.supervisor")

    # ── Properties ─────────────────────────────────────────────────────────────

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def attempt(self) -> int:
        """Consecutive failures since the last successful open."""
        return self._attempt

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def exhausted(self) -> bool:
        """True once automatic reconnection has given up."""
        return self._exhausted

    @property
    def reconnect_pending(self) -> bool:
        return self._timer is not None

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def start(self, session_id: str) -> None:
        """Open the stream for *session_id*, tearing down any previous one first."""
        self.stop()
        self._session_id = session_id
        self._logger = structlog.get_logger("echoline.supervisor").bind(session_id=session_id)
        self._open()

    def stop(self) -> None:
        """
        Close the stream and cancel any pending reconnect.

        Synchronous: once this returns no callback armed earlier will touch
        the projection. The open connection is released by its reader task
        as it unwinds.
        """
        self._epoch += 1
        self._cancel_timer()
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        self._reader = None
        if self._session_id is not None:
            self._logger.debug("supervisor_stopped")
        self._session_id = None
        self._attempt = 0
        self._connected = False
        self._exhausted = False

    def retry(self) -> None:
        """Reconnect now with a fresh attempt counter. No-op when not started."""
        if self._session_id is None:
            return
        self._epoch += 1
        self._cancel_timer()
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        self._attempt = 0
        self._connected = False
        self._exhausted = False
        self._logger.info("manual_reconnect_requested")
        self._open()

    # ── Internals ──────────────────────────────────────────────────────────────

    def _open(self) -> None:
        assert self._session_id is not None
        connection_id = self._id_generator("conn")
        loop = asyncio.get_running_loop()
        self._reader = loop.create_task(
            self._run(self._session_id, self._epoch, connection_id),
            name=f"echoline-stream-{connection_id}",
        )

    async def _run(self, session_id: str, epoch: int, connection_id: str) -> None:
        log = self._logger.bind(connection_id=connection_id)
        log.debug("connection_opening", attempt=self._attempt)
        try:
            connection = await self._transport.connect(session_id)
        except TransportError as exc:
            if epoch == self._epoch:
                log.warning("connection_failed", error=exc.reason, status_code=exc.status_code)
                self._schedule_reconnect(exc.reason)
            return
        except Exception as exc:
            if epoch == self._epoch:
                log.warning("connection_failed", error=str(exc) or type(exc).__name__)
                self._schedule_reconnect(str(exc) or type(exc).__name__)
            return

        if epoch != self._epoch:
            await self._close(connection, log)
            return

        self._attempt = 0
        self._cancel_timer()
        self._connected = True
        self._exhausted = False
        self._dispatch(Connected())
        self._event_bus.publish(
            SyncEvent.CONNECTED, {"session_id": session_id, "connection_id": connection_id}
        )
        log.info("stream_connected")

        reason = await self._read(connection, epoch, log)
        if epoch != self._epoch:
            return
        self._connected = False
        self._schedule_reconnect(reason)

    async def _read(
        self, connection: Connection, epoch: int, log: structlog.BoundLogger
    ) -> str:
        """Pump frames until the stream ends; returns the reconnect reason."""
        reason = "Connection lost"
        try:
            async for raw in connection:
                if epoch != self._epoch:
                    break
                action = self._decode(raw)
                if action is None:
                    continue
                self._dispatch(action)
                if isinstance(action, SessionError):
                    log.warning("session_error_received", error=action.error)
                    reason = action.error
                    break
            else:
                log.info("stream_closed_by_server")
        except TransportError as exc:
            log.warning("stream_broken", error=exc.reason)
            reason = exc.reason
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            log.warning("stream_broken", error=reason, exc_type=type(exc).__name__)
        finally:
            await self._close(connection, log)
        return reason

    async def _close(self, connection: Connection, log: structlog.BoundLogger) -> None:
        try:
            await connection.aclose()
        except Exception as exc:
            log.debug("connection_close_failed", error=str(exc))

    def _schedule_reconnect(self, reason: str | None) -> None:
        if self._session_id is None or self._timer is not None:
            return
        cfg = self._config
        self._attempt += 1

        if self._attempt > cfg.max_retries:
            error = reason or EXHAUSTED_MESSAGE
            self._exhausted = True
            self._dispatch(Disconnected(error=error, terminal=True))
            self._event_bus.publish(
                SyncEvent.CONNECTION_EXHAUSTED,
                {"session_id": self._session_id, "error": error, "attempts": cfg.max_retries},
            )
            self._logger.error("reconnect_exhausted", attempts=cfg.max_retries, error=error)
            return

        delay = backoff_delay(self._attempt, cfg)
        self._dispatch(Disconnected(error=reason))
        self._event_bus.publish(
            SyncEvent.DISCONNECTED,
            {
                "session_id": self._session_id,
                "error": reason,
                "attempt": self._attempt,
                "delay": delay,
            },
        )
        self._logger.info("reconnect_scheduled", attempt=self._attempt, delay=delay)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer, self._epoch)

    def _on_timer(self, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._timer = None
        self._open()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _default_id_generator(prefix: str) -> str:
    from echoline.session import make_id

    return make_id(prefix)
