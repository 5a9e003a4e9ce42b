"""Wire envelope of the session event stream.

Every frame is a JSON object ``{"type": ..., "properties": {...}}``. Frames
forwarded on behalf of a child session additionally carry a ``_meta`` object
``{"sessionId": ..., "isParent": ...}`` injected by the streaming proxy.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from echoline.models.message import Message, Part, WireModel
from echoline.models.session import (
    PermissionRequest,
    QuestionRequest,
    RevertPointer,
    SessionStatus,
    Todo,
)


class EventType(StrEnum):
    """Every event type the projection understands."""

    MESSAGE_UPDATED = "message.updated"
    MESSAGE_REMOVED = "message.removed"
    PART_UPDATED = "message.part.updated"
    PART_REMOVED = "message.part.removed"
    SESSION_STATUS = "session.status"
    SESSION_IDLE = "session.idle"
    PERMISSION_ASKED = "permission.asked"
    PERMISSION_REPLIED = "permission.replied"
    QUESTION_ASKED = "question.asked"
    QUESTION_REPLIED = "question.replied"
    QUESTION_REJECTED = "question.rejected"
    TODO_UPDATED = "todo.updated"
    SESSION_ERROR = "session.error"
    SESSION_UPDATED = "session.updated"


CHILD_EVENT_TYPES: frozenset[EventType] = frozenset(
    {
        EventType.MESSAGE_UPDATED,
        EventType.MESSAGE_REMOVED,
        EventType.PART_UPDATED,
        EventType.PART_REMOVED,
        EventType.SESSION_STATUS,
        EventType.SESSION_IDLE,
    }
)
"""Event types forwarded into a child projection. Prompts, todos and errors stay with the parent."""


class RoutingMeta(BaseModel):
    """Routing tag attached by the streaming proxy. Extra keys are ignored."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(default=None, alias="sessionId")
    is_parent: bool | None = Field(default=None, alias="isParent")

    @property
    def child_id(self) -> str | None:
        """The child session id, or None when the frame belongs to the primary session."""
        if self.is_parent or not self.session_id:
            return None
        return self.session_id


class Envelope(BaseModel):
    type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    meta: RoutingMeta | None = Field(default=None, alias="_meta")

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: Any) -> Any:
        return {} if value is None else value


# ── Event properties ───────────────────────────────────────────────────────────


class MessageUpdatedProps(WireModel):
    info: Message


class MessageRemovedProps(WireModel):
    session_id: str = Field(default="", alias="sessionID")
    message_id: str = Field(alias="messageID")


class PartUpdatedProps(WireModel):
    part: Part
    delta: str | None = None


class PartRemovedProps(WireModel):
    session_id: str = Field(default="", alias="sessionID")
    message_id: str = Field(alias="messageID")
    part_id: str = Field(alias="partID")


class SessionStatusProps(WireModel):
    session_id: str = Field(default="", alias="sessionID")
    status: SessionStatus


class RequestRepliedProps(WireModel):
    """Shared by ``permission.replied``, ``question.replied`` and ``question.rejected``."""

    session_id: str = Field(default="", alias="sessionID")
    request_id: str = Field(alias="requestID")


class TodoUpdatedProps(WireModel):
    session_id: str = Field(default="", alias="sessionID")
    todos: list[Todo] = Field(default_factory=list)


class SessionErrorProps(WireModel):
    session_id: str = Field(default="", alias="sessionID")
    error: Any = None


class SessionInfo(WireModel):
    id: str = ""
    revert: RevertPointer | None = None


class SessionUpdatedProps(WireModel):
    info: SessionInfo = Field(default_factory=SessionInfo)


PROPERTY_MODELS: dict[EventType, type[BaseModel]] = {
    EventType.MESSAGE_UPDATED: MessageUpdatedProps,
    EventType.MESSAGE_REMOVED: MessageRemovedProps,
    EventType.PART_UPDATED: PartUpdatedProps,
    EventType.PART_REMOVED: PartRemovedProps,
    EventType.SESSION_STATUS: SessionStatusProps,
    EventType.PERMISSION_ASKED: PermissionRequest,
    EventType.PERMISSION_REPLIED: RequestRepliedProps,
    EventType.QUESTION_ASKED: QuestionRequest,
    EventType.QUESTION_REPLIED: RequestRepliedProps,
    EventType.QUESTION_REJECTED: RequestRepliedProps,
    EventType.TODO_UPDATED: TodoUpdatedProps,
    EventType.SESSION_ERROR: SessionErrorProps,
    EventType.SESSION_UPDATED: SessionUpdatedProps,
}
"""Validation model for each event's ``properties``. ``session.idle`` carries nothing we read."""
