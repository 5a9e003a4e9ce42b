"""Immutable projection state.

Every container held by a state object is treated as frozen: the reducer
copies a map before changing it and otherwise hands back the same object.
Consumers rely on that identity to memoize derived views, so never mutate a
map taken from a state in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from echoline.models.message import Message, Part
from echoline.models.session import (
    IDLE,
    PermissionRequest,
    QuestionRequest,
    RevertPointer,
    SessionStatus,
    Todo,
)

MessageMap = dict[str, Message]
PartsByMessage = dict[str, dict[str, Part]]


@dataclass(frozen=True, slots=True)
class ChildProjection:
    """Messages, parts and status of one child (sub-agent) session."""

    messages: MessageMap = field(default_factory=dict)
    parts_by_message: PartsByMessage = field(default_factory=dict)
    status: SessionStatus = IDLE


@dataclass(frozen=True, slots=True)
class ProjectionState:
    """
    Local reconstruction of one remote session.

    Connection state (``is_connected``, ``connection_error``,
    ``reconnect_exhausted``) and business state (``status``,
    ``session_error``) are kept in separate fields and never overwrite each
    other.
    """

    messages: MessageMap = field(default_factory=dict)
    parts_by_message: PartsByMessage = field(default_factory=dict)
    status: SessionStatus = IDLE
    session_error: str | None = None
    pending_permissions: dict[str, PermissionRequest] = field(default_factory=dict)
    pending_questions: dict[str, QuestionRequest] = field(default_factory=dict)
    todos: tuple[Todo, ...] = ()
    revert: RevertPointer | None = None
    is_connected: bool = False
    connection_error: str | None = None
    reconnect_exhausted: bool = False
    children: dict[str, ChildProjection] = field(default_factory=dict)

    def child(self, child_id: str) -> ChildProjection | None:
        return self.children.get(child_id)


INITIAL_STATE = ProjectionState()
