"""
Frame decoder and child-session router.

``decode_frame`` turns one raw stream frame into a reducer action. It never
raises: malformed JSON, unknown event types and payloads that fail
validation are logged at debug level and dropped, so one bad frame can
never tear down the stream.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from echoline.models.session import IDLE
from echoline.projection.actions import (
    Action,
    ChildMessageRemoved,
    ChildMessageUpdated,
    ChildPartRemoved,
    ChildPartUpdated,
    ChildStatusSet,
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
from echoline.protocol.frames import (
    CHILD_EVENT_TYPES,
    PROPERTY_MODELS,
    Envelope,
    EventType,
)

_logger = structlog.get_logger("echoline.decoder")


def describe_error(error: Any) -> str:
    """
    Reduce a ``session.error`` payload to a human-readable string.

    Strings pass through. Objects yield their ``message``, then
    ``data.message``, then ``name``; anything else is JSON-encoded.
    """
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
        data = error.get("data")
        if isinstance(data, Mapping):
            nested = data.get("message")
            if isinstance(nested, str) and nested:
                return nested
        name = error.get("name")
        if isinstance(name, str) and name:
            return name
    if error is None:
        return "Unknown session error"
    try:
        return json.dumps(error, default=str)
    except (TypeError, ValueError):
        return str(error)


def _primary_action(event_type: EventType, props: Any) -> Action | None:
    if event_type is EventType.MESSAGE_UPDATED:
        return MessageUpdated(message=props.info)
    if event_type is EventType.MESSAGE_REMOVED:
        return MessageRemoved(message_id=props.message_id)
    if event_type is EventType.PART_UPDATED:
        return PartUpdated(part=props.part)
    if event_type is EventType.PART_REMOVED:
        return PartRemoved(message_id=props.message_id, part_id=props.part_id)
    if event_type is EventType.SESSION_STATUS:
        return StatusSet(status=props.status)
    if event_type is EventType.SESSION_IDLE:
        return StatusSet(status=IDLE)
    if event_type is EventType.PERMISSION_ASKED:
        return PermissionAsked(request=props)
    if event_type is EventType.PERMISSION_REPLIED:
        return PermissionReplied(request_id=props.request_id)
    if event_type is EventType.QUESTION_ASKED:
        return QuestionAsked(request=props)
    if event_type in (EventType.QUESTION_REPLIED, EventType.QUESTION_REJECTED):
        return QuestionReplied(request_id=props.request_id)
    if event_type is EventType.TODO_UPDATED:
        return TodosReplaced(todos=tuple(props.todos))
    if event_type is EventType.SESSION_ERROR:
        return SessionError(error=describe_error(props.error))
    if event_type is EventType.SESSION_UPDATED:
        return SessionUpdated(revert=props.info.revert)
    return None


def _child_action(child_id: str, event_type: EventType, props: Any) -> Action | None:
    if event_type is EventType.MESSAGE_UPDATED:
        return ChildMessageUpdated(child_id=child_id, message=props.info)
    if event_type is EventType.MESSAGE_REMOVED:
        return ChildMessageRemoved(child_id=child_id, message_id=props.message_id)
    if event_type is EventType.PART_UPDATED:
        return ChildPartUpdated(child_id=child_id, part=props.part)
    if event_type is EventType.PART_REMOVED:
        return ChildPartRemoved(
            child_id=child_id, message_id=props.message_id, part_id=props.part_id
        )
    if event_type is EventType.SESSION_STATUS:
        return ChildStatusSet(child_id=child_id, status=props.status)
    if event_type is EventType.SESSION_IDLE:
        return ChildStatusSet(child_id=child_id, status=IDLE)
    return None


def parse_frame(raw: str | bytes | Mapping[str, Any]) -> Envelope | None:
    """Parse a raw frame into an :class:`Envelope`, or None if it is not a valid one."""
    data: Any = raw
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            _logger.debug("frame_dropped", reason="invalid_json")
            return None
    if not isinstance(data, Mapping):
        _logger.debug("frame_dropped", reason="not_an_object")
        return None
    try:
        return Envelope.model_validate(data)
    except ValidationError as exc:
        _logger.debug("frame_dropped", reason="invalid_envelope", error=str(exc))
        return None


def decode_frame(raw: str | bytes | Mapping[str, Any]) -> Action | None:
    """
    Decode one stream frame into a reducer action.

    Args:
        raw: JSON text (or an already-decoded mapping) of a single event.

    Returns:
        A primary-scoped action, a child-scoped action when the frame's
        routing metadata names a non-parent session, or None when the frame
        is malformed, of an unknown type, or not forwarded for child sessions.
    """
    envelope = parse_frame(raw)
    if envelope is None:
        return None

    try:
        event_type = EventType(envelope.type)
    except ValueError:
        _logger.debug("frame_dropped", reason="unknown_type", type=envelope.type)
        return None

    child_id = envelope.meta.child_id if envelope.meta is not None else None
    if child_id is not None and event_type not in CHILD_EVENT_TYPES:
        _logger.debug("frame_dropped", reason="not_routed_to_child", type=event_type.value)
        return None

    props: BaseModel | None = None
    model = PROPERTY_MODELS.get(event_type)
    if model is not None:
        try:
            props = model.model_validate(envelope.properties)
        except ValidationError as exc:
            _logger.debug(
                "frame_dropped", reason="invalid_properties", type=event_type.value, error=str(exc)
            )
            return None

    if child_id is not None:
        return _child_action(child_id, event_type, props)
    return _primary_action(event_type, props)
