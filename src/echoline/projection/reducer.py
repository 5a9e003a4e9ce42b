"""
Pure reducer for the session projection.

``reduce(state, action)`` never performs I/O, never raises and never mutates
its input. Containers are copied on write; when an action changes nothing
(a repeated upsert, removing an absent id) the very same state object is
returned so memoized views stay valid.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

from echoline.models.message import Message, Part
from echoline.models.session import IDLE
from echoline.projection.actions import (
    Action,
    ChildInit,
    ChildMessageRemoved,
    ChildMessageUpdated,
    ChildPartRemoved,
    ChildPartUpdated,
    ChildStatusSet,
    Clear,
    Connected,
    Disconnected,
    Init,
    MessageRemoved,
    MessageUpdated,
    PartRemoved,
    PartUpdated,
    PermissionAsked,
    PermissionReplied,
    QuestionAsked,
    QuestionReplied,
    SessionError,
    SessionUpdated,
    StatusSet,
    TodosReplaced,
)
from echoline.projection.state import (
    INITIAL_STATE,
    ChildProjection,
    MessageMap,
    PartsByMessage,
    ProjectionState,
)

# ── Map helpers shared by the primary and child branches ──────────────────────


def _upsert_messages(messages: MessageMap, incoming: Iterable[Message]) -> MessageMap:
    updated: MessageMap | None = None
    for message in incoming:
        current = (updated if updated is not None else messages).get(message.id)
        if current is not None and current == message:
            continue
        if updated is None:
            updated = dict(messages)
        updated[message.id] = message
    return messages if updated is None else updated


def _upsert_parts(parts_by_message: PartsByMessage, incoming: Iterable[Part]) -> PartsByMessage:
    # Parts are indexed by their message id whether or not that message is known yet.
    updated: PartsByMessage | None = None
    copied: set[str] = set()
    for part in incoming:
        source = updated if updated is not None else parts_by_message
        existing = source.get(part.message_id)
        if existing is not None and existing.get(part.id) == part:
            continue
        if updated is None:
            updated = dict(parts_by_message)
        if part.message_id not in copied:
            updated[part.message_id] = dict(existing or {})
            copied.add(part.message_id)
        updated[part.message_id][part.id] = part
    return parts_by_message if updated is None else updated


def _remove_message(
    messages: MessageMap, parts_by_message: PartsByMessage, message_id: str
) -> tuple[MessageMap, PartsByMessage]:
    if message_id in messages:
        messages = {k: v for k, v in messages.items() if k != message_id}
    if message_id in parts_by_message:
        parts_by_message = {k: v for k, v in parts_by_message.items() if k != message_id}
    return messages, parts_by_message


def _remove_part(parts_by_message: PartsByMessage, message_id: str, part_id: str) -> PartsByMessage:
    existing = parts_by_message.get(message_id)
    if existing is None or part_id not in existing:
        return parts_by_message
    updated = dict(parts_by_message)
    updated[message_id] = {k: v for k, v in existing.items() if k != part_id}
    return updated


def _without(mapping: dict[str, Any], key: str) -> dict[str, Any]:
    if key not in mapping:
        return mapping
    return {k: v for k, v in mapping.items() if k != key}


def _with_child(state: ProjectionState, child_id: str, child: ChildProjection) -> ProjectionState:
    if state.children.get(child_id) is child:
        return state
    children = dict(state.children)
    children[child_id] = child
    return replace(state, children=children)


def _evolve(state: ProjectionState, **changes: Any) -> ProjectionState:
    """``dataclasses.replace`` that returns *state* itself when nothing changed."""
    if all(getattr(state, name) is value for name, value in changes.items()):
        return state
    return replace(state, **changes)


# ── Primary branches ───────────────────────────────────────────────────────────


def _message_updated(state: ProjectionState, action: MessageUpdated) -> ProjectionState:
    return _evolve(state, messages=_upsert_messages(state.messages, (action.message,)))


def _message_removed(state: ProjectionState, action: MessageRemoved) -> ProjectionState:
    messages, parts = _remove_message(state.messages, state.parts_by_message, action.message_id)
    return _evolve(state, messages=messages, parts_by_message=parts)


def _part_updated(state: ProjectionState, action: PartUpdated) -> ProjectionState:
    return _evolve(state, parts_by_message=_upsert_parts(state.parts_by_message, (action.part,)))


def _part_removed(state: ProjectionState, action: PartRemoved) -> ProjectionState:
    parts = _remove_part(state.parts_by_message, action.message_id, action.part_id)
    return _evolve(state, parts_by_message=parts)


def _status_set(state: ProjectionState, action: StatusSet) -> ProjectionState:
    if action.status.type != "busy":
        if state.status == action.status:
            return state
        return replace(state, status=action.status)
    # Work resumed: neither error describes the session any more.
    if (
        state.status == action.status
        and state.session_error is None
        and state.connection_error is None
    ):
        return state
    return replace(state, status=action.status, session_error=None, connection_error=None)


def _permission_asked(state: ProjectionState, action: PermissionAsked) -> ProjectionState:
    if state.pending_permissions.get(action.request.id) == action.request:
        return state
    pending = dict(state.pending_permissions)
    pending[action.request.id] = action.request
    return replace(state, pending_permissions=pending)


def _permission_replied(state: ProjectionState, action: PermissionReplied) -> ProjectionState:
    return _evolve(
        state, pending_permissions=_without(state.pending_permissions, action.request_id)
    )


def _question_asked(state: ProjectionState, action: QuestionAsked) -> ProjectionState:
    if state.pending_questions.get(action.request.id) == action.request:
        return state
    pending = dict(state.pending_questions)
    pending[action.request.id] = action.request
    return replace(state, pending_questions=pending)


def _question_replied(state: ProjectionState, action: QuestionReplied) -> ProjectionState:
    return _evolve(state, pending_questions=_without(state.pending_questions, action.request_id))


def _todos_replaced(state: ProjectionState, action: TodosReplaced) -> ProjectionState:
    if state.todos == action.todos:
        return state
    return replace(state, todos=action.todos)


def _session_updated(state: ProjectionState, action: SessionUpdated) -> ProjectionState:
    if state.revert == action.revert:
        return state
    return replace(state, revert=action.revert)


def _session_error(state: ProjectionState, action: SessionError) -> ProjectionState:
    return replace(state, session_error=action.error, status=IDLE)


def _init(state: ProjectionState, action: Init) -> ProjectionState:
    return _evolve(
        state,
        messages=_upsert_messages(state.messages, action.messages),
        parts_by_message=_upsert_parts(state.parts_by_message, action.parts),
    )


# ── Connection branches ────────────────────────────────────────────────────────


def _connected(state: ProjectionState, action: Connected) -> ProjectionState:
    if state.is_connected and state.connection_error is None and not state.reconnect_exhausted:
        return state
    return replace(state, is_connected=True, connection_error=None, reconnect_exhausted=False)


def _disconnected(state: ProjectionState, action: Disconnected) -> ProjectionState:
    return replace(
        state,
        is_connected=False,
        connection_error=action.error,
        reconnect_exhausted=action.terminal,
    )


def _clear(state: ProjectionState, action: Clear) -> ProjectionState:
    return INITIAL_STATE


# ── Child branches ─────────────────────────────────────────────────────────────


def _child_message_updated(state: ProjectionState, action: ChildMessageUpdated) -> ProjectionState:
    child = state.children.get(action.child_id) or ChildProjection()
    messages = _upsert_messages(child.messages, (action.message,))
    if messages is child.messages and action.child_id in state.children:
        return state
    return _with_child(state, action.child_id, replace(child, messages=messages))


def _child_message_removed(state: ProjectionState, action: ChildMessageRemoved) -> ProjectionState:
    child = state.children.get(action.child_id)
    if child is None:
        return state
    messages, parts = _remove_message(child.messages, child.parts_by_message, action.message_id)
    if messages is child.messages and parts is child.parts_by_message:
        return state
    return _with_child(
        state, action.child_id, replace(child, messages=messages, parts_by_message=parts)
    )


def _child_part_updated(state: ProjectionState, action: ChildPartUpdated) -> ProjectionState:
    child = state.children.get(action.child_id) or ChildProjection()
    parts = _upsert_parts(child.parts_by_message, (action.part,))
    if parts is child.parts_by_message and action.child_id in state.children:
        return state
    return _with_child(state, action.child_id, replace(child, parts_by_message=parts))


def _child_part_removed(state: ProjectionState, action: ChildPartRemoved) -> ProjectionState:
    child = state.children.get(action.child_id)
    if child is None:
        return state
    parts = _remove_part(child.parts_by_message, action.message_id, action.part_id)
    if parts is child.parts_by_message:
        return state
    return _with_child(state, action.child_id, replace(child, parts_by_message=parts))


def _child_status_set(state: ProjectionState, action: ChildStatusSet) -> ProjectionState:
    child = state.children.get(action.child_id)
    if child is not None and child.status == action.status:
        return state
    return _with_child(
        state, action.child_id, replace(child or ChildProjection(), status=action.status)
    )


def _child_init(state: ProjectionState, action: ChildInit) -> ProjectionState:
    child = state.children.get(action.child_id) or ChildProjection()
    messages = _upsert_messages(child.messages, action.messages)
    parts = _upsert_parts(child.parts_by_message, action.parts)
    if (
        action.child_id in state.children
        and messages is child.messages
        and parts is child.parts_by_message
    ):
        return state
    return _with_child(
        state, action.child_id, replace(child, messages=messages, parts_by_message=parts)
    )


_Branch = Callable[[ProjectionState, Any], ProjectionState]

_BRANCHES: dict[type, _Branch] = {
    MessageUpdated: _message_updated,
    MessageRemoved: _message_removed,
    PartUpdated: _part_updated,
    PartRemoved: _part_removed,
    StatusSet: _status_set,
    PermissionAsked: _permission_asked,
    PermissionReplied: _permission_replied,
    QuestionAsked: _question_asked,
    QuestionReplied: _question_replied,
    TodosReplaced: _todos_replaced,
    SessionUpdated: _session_updated,
    SessionError: _session_error,
    Init: _init,
    Connected: _connected,
    Disconnected: _disconnected,
    Clear: _clear,
    ChildMessageUpdated: _child_message_updated,
    ChildMessageRemoved: _child_message_removed,
    ChildPartUpdated: _child_part_updated,
    ChildPartRemoved: _child_part_removed,
    ChildStatusSet: _child_status_set,
    ChildInit: _child_init,
}


def reduce(state: ProjectionState, action: Action) -> ProjectionState:
    """
    Return the projection that results from applying *action* to *state*.

    Args:
        state: Current projection. Not modified.
        action: A decoded action. Unknown action types leave the state unchanged.

    Returns:
        The next projection, or *state* itself when the action changes nothing.
    """
    branch = _BRANCHES.get(type(action))
    if branch is None:
        return state
    return branch(state, action)
