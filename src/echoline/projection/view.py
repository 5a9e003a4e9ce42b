"""Memoized read accessors over the current projection."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from echoline.models.message import Message, MessageWithParts, Part
from echoline.models.session import (
    IDLE,
    PermissionRequest,
    QuestionRequest,
    RevertPointer,
    SessionStatus,
    Todo,
)
from echoline.projection.state import (
    ChildProjection,
    MessageMap,
    PartsByMessage,
    ProjectionState,
)

T = TypeVar("T")


class _Memo(Generic[T]):
    """Single-slot cache invalidated when any key object is replaced (identity, not equality)."""

    __slots__ = ("_keys", "_value")

    def __init__(self) -> None:
        self._keys: tuple[Any, ...] | None = None
        self._value: T | None = None

    def get(self, keys: tuple[Any, ...], compute: Callable[[], T]) -> T:
        cached = self._keys
        if cached is not None and len(cached) == len(keys):
            if all(a is b for a, b in zip(cached, keys)):
                return self._value  # type: ignore[return-value]
        value = compute()
        self._keys = keys
        self._value = value
        return value


def _sorted_messages(messages: MessageMap) -> tuple[Message, ...]:
    return tuple(sorted(messages.values(), key=lambda m: (m.time.created, m.id)))


class _PartsIndex:
    """Per-message part tuples, reused for every message whose part map was not replaced."""

    __slots__ = ("_entries", "_root")

    def __init__(self) -> None:
        self._root: PartsByMessage | None = None
        self._entries: dict[str, tuple[dict[str, Part], tuple[Part, ...]]] = {}

    def get(self, parts_by_message: PartsByMessage, message_id: str) -> tuple[Part, ...]:
        if parts_by_message is not self._root:
            self._entries = {
                mid: entry
                for mid, entry in self._entries.items()
                if parts_by_message.get(mid) is entry[0]
            }
            self._root = parts_by_message
        parts = parts_by_message.get(message_id)
        if parts is None:
            return ()
        entry = self._entries.get(message_id)
        if entry is None or entry[0] is not parts:
            entry = (parts, tuple(parts.values()))
            self._entries[message_id] = entry
        return entry[1]


class ProjectionView:
    """
    Derived, memoized views over a projection.

    The view reads the *current* state through ``get_state`` on every access,
    so a single instance stays valid for the lifetime of its owner. Derived
    collections are returned as tuples and are only rebuilt when the map they
    are computed from has been replaced by the reducer.

    Example::

        view = sync.view
        for message in view.messages:
            for part in view.parts_for_message(message.id):
                ...
    """

    def __init__(self, get_state: Callable[[], ProjectionState]) -> None:
        self._get_state = get_state
        self._messages = _Memo[tuple[Message, ...]]()
        self._permissions = _Memo[tuple[PermissionRequest, ...]]()
        self._questions = _Memo[tuple[QuestionRequest, ...]]()
        self._child_ids = _Memo[frozenset[str]]()
        self._parts = _PartsIndex()
        self._children_root: dict[str, ChildProjection] | None = None
        self._child_messages: dict[str, _Memo[tuple[Message, ...]]] = {}
        self._child_parts: dict[str, _PartsIndex] = {}

    @property
    def state(self) -> ProjectionState:
        """The raw projection this view is currently reading."""
        return self._get_state()

    # ── Primary session ─────────────────────────────────────────────────────────

    @property
    def messages(self) -> tuple[Message, ...]:
        """Messages sorted by creation time ascending, ties broken by id."""
        messages = self._get_state().messages
        return self._messages.get((messages,), lambda: _sorted_messages(messages))

    def parts_for_message(self, message_id: str) -> tuple[Part, ...]:
        """All parts recorded for *message_id*, including parts whose message is not known yet."""
        return self._parts.get(self._get_state().parts_by_message, message_id)

    def messages_with_parts(self) -> list[MessageWithParts]:
        """Sorted messages paired with their parts."""
        return [
            MessageWithParts(message=m, parts=list(self.parts_for_message(m.id)))
            for m in self.messages
        ]

    @property
    def pending_permissions(self) -> tuple[PermissionRequest, ...]:
        pending = self._get_state().pending_permissions
        return self._permissions.get((pending,), lambda: tuple(pending.values()))

    @property
    def pending_questions(self) -> tuple[QuestionRequest, ...]:
        pending = self._get_state().pending_questions
        return self._questions.get((pending,), lambda: tuple(pending.values()))

    @property
    def todos(self) -> tuple[Todo, ...]:
        return self._get_state().todos

    @property
    def status(self) -> SessionStatus:
        return self._get_state().status

    @property
    def session_error(self) -> str | None:
        """Business-level error reported by the agent (``session.error``)."""
        return self._get_state().session_error

    @property
    def is_connected(self) -> bool:
        return self._get_state().is_connected

    @property
    def connection_error(self) -> str | None:
        """Transport-level error, independent of :attr:`session_error`."""
        return self._get_state().connection_error

    @property
    def reconnect_exhausted(self) -> bool:
        """True when automatic reconnection gave up and a manual retry is required."""
        return self._get_state().reconnect_exhausted

    @property
    def revert(self) -> RevertPointer | None:
        return self._get_state().revert

    # ── Child sessions ──────────────────────────────────────────────────────────

    def _child(self, child_id: str) -> ChildProjection | None:
        children = self._get_state().children
        if children is not self._children_root:
            # Drop memos of children that left the projection.
            for stale in self._child_messages.keys() - children.keys():
                del self._child_messages[stale]
            for stale in self._child_parts.keys() - children.keys():
                del self._child_parts[stale]
            self._children_root = children
        return children.get(child_id)

    def child_messages(self, child_id: str) -> tuple[Message, ...]:
        """Sorted messages of a child session; empty when the child is unknown."""
        child = self._child(child_id)
        if child is None:
            return ()
        memo = self._child_messages.setdefault(child_id, _Memo())
        messages = child.messages
        return memo.get((messages,), lambda: _sorted_messages(messages))

    def child_parts_for_message(self, child_id: str, message_id: str) -> tuple[Part, ...]:
        child = self._child(child_id)
        if child is None:
            return ()
        index = self._child_parts.setdefault(child_id, _PartsIndex())
        return index.get(child.parts_by_message, message_id)

    def child_status(self, child_id: str) -> SessionStatus:
        """Status of a child session; idle when it has not reported one."""
        child = self._get_state().children.get(child_id)
        return IDLE if child is None else child.status

    @property
    def child_session_ids(self) -> frozenset[str]:
        """Every child session id that has received at least one routed event."""
        children = self._get_state().children
        return self._child_ids.get((children,), lambda: frozenset(children))
