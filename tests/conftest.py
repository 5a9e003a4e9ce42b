"""Shared fixtures for Echoline tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from echoline.events.bus import EventBus, SyncEvent
from echoline.models.config import HydrationConfig, ReconnectConfig, SyncConfig
from echoline.models.message import Message, TextPart
from echoline.transport.base import TransportError

_END = object()


@pytest.fixture
def event_bus():
    """EventBus with a .collected list for asserting events."""
    bus = EventBus()
    collected: list[tuple[SyncEvent, dict[str, Any]]] = []

    def _collect(event: SyncEvent, payload: dict[str, Any]) -> None:
        collected.append((event, payload))

    bus.subscribe_all(_collect)
    bus.collected = collected  # type: ignore[attr-defined]
    return bus


@pytest.fixture
def fast_reconnect():
    """ReconnectConfig with millisecond delays and a small retry budget."""
    return ReconnectConfig(base_delay=0.001, multiplier=1.0, max_delay=0.001, max_retries=3)


@pytest.fixture
def sync_config(fast_reconnect):
    """SyncConfig suitable for driving SessionSync against in-memory stubs."""
    return SyncConfig(reconnect=fast_reconnect, hydration=HydrationConfig(base_delay=0.001))


def events_of(bus: EventBus, event: SyncEvent) -> list[dict[str, Any]]:
    """Payloads collected by the ``event_bus`` fixture for one event type."""
    return [payload for ev, payload in bus.collected if ev == event]  # type: ignore[attr-defined]


async def wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Poll *predicate* on the running loop until it holds or *timeout* expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.001)


# ── Record builders ────────────────────────────────────────────────────────────


def make_message(
    msg_id: str,
    role: str = "user",
    created: int = 0,
    session_id: str = "ses_TEST01",
) -> Message:
    """Helper to create a test Message."""
    return Message.model_validate(
        {
            "id": msg_id,
            "sessionID": session_id,
            "role": role,
            "time": {"created": created},
        }
    )


def make_part(
    part_id: str,
    message_id: str,
    text: str = "Hello world",
    session_id: str = "ses_TEST01",
) -> TextPart:
    """Helper to create a test TextPart."""
    return TextPart.model_validate(
        {
            "id": part_id,
            "sessionID": session_id,
            "messageID": message_id,
            "type": "text",
            "text": text,
        }
    )


def message_record(msg_id: str, role: str = "user", created: int = 0) -> dict[str, Any]:
    return {"id": msg_id, "sessionID": "ses_TEST01", "role": role, "time": {"created": created}}


def part_record(part_id: str, message_id: str, text: str = "Hello world") -> dict[str, Any]:
    return {
        "id": part_id,
        "sessionID": "ses_TEST01",
        "messageID": message_id,
        "type": "text",
        "text": text,
    }


def make_frame(
    event_type: str,
    properties: dict[str, Any] | None = None,
    child_id: str | None = None,
    is_parent: bool = False,
) -> str:
    """Serialise one stream envelope, optionally tagged for a child session."""
    envelope: dict[str, Any] = {"type": event_type, "properties": properties or {}}
    if child_id is not None:
        envelope["_meta"] = {"sessionId": child_id, "isParent": is_parent}
    return json.dumps(envelope)


# ── Transport stubs ────────────────────────────────────────────────────────────


class StubConnection:
    """
    In-memory event stream.

    Frames queued up-front are delivered first; ``feed`` adds more while the
    reader is waiting. The stream stays open until ``end`` or ``aclose`` is
    called, or until a queued exception is raised to the reader.
    """

    def __init__(self, frames: list[str] | tuple[str, ...] = (), *, hold: bool = True) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        for frame in frames:
            self._queue.put_nowait(frame)
        if not hold:
            self._queue.put_nowait(_END)
        self.closed = False

    def feed(self, item: str | BaseException) -> None:
        self._queue.put_nowait(item)

    def end(self) -> None:
        self._queue.put_nowait(_END)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    async def aclose(self) -> None:
        self.closed = True
        self._queue.put_nowait(_END)


class StubTransport:
    """
    Transport that replays a scripted sequence of connection outcomes.

    Each ``connect`` consumes the next entry: a StubConnection is returned,
    an exception is raised. Once the script runs out every connect fails.
    """

    def __init__(self, *outcomes: StubConnection | BaseException) -> None:
        self._outcomes = list(outcomes)
        self.connect_calls: list[str] = []
        self.connections: list[StubConnection] = []

    async def connect(self, session_id: str) -> StubConnection:
        self.connect_calls.append(session_id)
        await asyncio.sleep(0)
        if not self._outcomes:
            raise TransportError(session_id, "connection refused")
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        self.connections.append(outcome)
        return outcome


class StubSnapshotSource:
    """SnapshotSource serving fixed bodies, or raising a fixed error."""

    def __init__(
        self,
        messages: Any = None,
        children: dict[str, Any] | None = None,
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self._messages = messages if messages is not None else []
        self._children = children or {}
        self._error = error
        self._gate = gate
        self.calls: list[tuple[str, str | None]] = []

    async def fetch_messages(self, session_id: str) -> Any:
        self.calls.append((session_id, None))
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return self._messages

    async def fetch_child(self, session_id: str, child_id: str) -> Any:
        self.calls.append((session_id, child_id))
        if self._error is not None:
            raise self._error
        return self._children.get(child_id, {"messages": [], "parts": []})
