"""
Actions accepted by the projection reducer.

Primary-scoped and child-scoped actions are distinct classes: the router
decides the scope once, and the reducer never has to inspect routing
metadata. A primary branch is unreachable from a child action and vice versa.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from echoline.models.message import Message, Part
from echoline.models.session import (
    PermissionRequest,
    QuestionRequest,
    RevertPointer,
    SessionStatus,
    Todo,
)

# ── Primary session ────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class MessageUpdated:
    message: Message


@dataclass(frozen=True, slots=True)
class MessageRemoved:
    message_id: str


@dataclass(frozen=True, slots=True)
class PartUpdated:
    part: Part


@dataclass(frozen=True, slots=True)
class PartRemoved:
    message_id: str
    part_id: str


@dataclass(frozen=True, slots=True)
class StatusSet:
    status: SessionStatus


@dataclass(frozen=True, slots=True)
class PermissionAsked:
    request: PermissionRequest


@dataclass(frozen=True, slots=True)
class PermissionReplied:
    request_id: str


@dataclass(frozen=True, slots=True)
class QuestionAsked:
    request: QuestionRequest


@dataclass(frozen=True, slots=True)
class QuestionReplied:
    """Covers both ``question.replied`` and ``question.rejected``."""

    request_id: str


@dataclass(frozen=True, slots=True)
class TodosReplaced:
    todos: tuple[Todo, ...]


@dataclass(frozen=True, slots=True)
class SessionUpdated:
    revert: RevertPointer | None = None


@dataclass(frozen=True, slots=True)
class SessionError:
    error: str


@dataclass(frozen=True, slots=True)
class Init:
    """Hydration snapshot, applied with the same upsert semantics as live events."""

    messages: tuple[Message, ...] = ()
    parts: tuple[Part, ...] = ()


# ── Connection (emitted by the supervisor, never by the decoder) ──────────────


@dataclass(frozen=True, slots=True)
class Connected:
    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    error: str | None = None
    terminal: bool = False
    """True once the retry ceiling is exceeded and no reconnect is scheduled."""


@dataclass(frozen=True, slots=True)
class Clear:
    pass


# ── Child sessions ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ChildMessageUpdated:
    child_id: str
    message: Message


@dataclass(frozen=True, slots=True)
class ChildMessageRemoved:
    child_id: str
    message_id: str


@dataclass(frozen=True, slots=True)
class ChildPartUpdated:
    child_id: str
    part: Part


@dataclass(frozen=True, slots=True)
class ChildPartRemoved:
    child_id: str
    message_id: str
    part_id: str


@dataclass(frozen=True, slots=True)
class ChildStatusSet:
    child_id: str
    status: SessionStatus


@dataclass(frozen=True, slots=True)
class ChildInit:
    child_id: str
    messages: tuple[Message, ...] = ()
    parts: tuple[Part, ...] = ()


PrimaryAction = Union[
    MessageUpdated,
    MessageRemoved,
    PartUpdated,
    PartRemoved,
    StatusSet,
    PermissionAsked,
    PermissionReplied,
    QuestionAsked,
    QuestionReplied,
    TodosReplaced,
    SessionUpdated,
    SessionError,
    Init,
]

ConnectionAction = Union[Connected, Disconnected, Clear]

ChildAction = Union[
    ChildMessageUpdated,
    ChildMessageRemoved,
    ChildPartUpdated,
    ChildPartRemoved,
    ChildStatusSet,
    ChildInit,
]

Action = Union[PrimaryAction, ConnectionAction, ChildAction]
