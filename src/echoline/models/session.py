"""Session-level records: agent status, pending prompts, todos and revert pointer."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from echoline.models.message import ToolRef, WireModel

# ── Session Status ─────────────────────────────────────────────────────────────


class _StatusModel(BaseModel):
    """Statuses are shared values held by immutable projections."""

    model_config = ConfigDict(frozen=True)


class IdleStatus(_StatusModel):
    type: Literal["idle"] = "idle"


class BusyStatus(_StatusModel):
    type: Literal["busy"] = "busy"


class RetryStatus(_StatusModel):
    """The agent is waiting to retry a failed provider call."""

    type: Literal["retry"] = "retry"
    attempt: int = 0
    message: str = ""
    next: int = 0
    """Unix millisecond timestamp of the next attempt."""


class ErrorStatus(_StatusModel):
    type: Literal["error"] = "error"
    message: str = ""


# Server-reported agent activity. Independent of the transport connection state.
SessionStatus = Annotated[
    IdleStatus | BusyStatus | RetryStatus | ErrorStatus,
    Field(discriminator="type"),
]

IDLE = IdleStatus()


# ── Pending prompts ────────────────────────────────────────────────────────────


class PermissionRequest(WireModel):
    """The agent is asking permission to run a tool."""

    id: str
    session_id: str = Field(default="", alias="sessionID")
    permission: str = ""
    patterns: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    always: list[str] = Field(default_factory=list)
    tool: ToolRef | None = None


class QuestionOption(BaseModel):
    label: str
    description: str = ""


class QuestionInfo(BaseModel):
    question: str
    header: str = ""
    options: list[QuestionOption] = Field(default_factory=list)
    multiple: bool | None = None
    custom: bool | None = None


class QuestionRequest(WireModel):
    """The agent is asking the user one or more questions."""

    id: str
    session_id: str = Field(default="", alias="sessionID")
    questions: list[QuestionInfo] = Field(default_factory=list)
    tool: ToolRef | None = None


# ── Todos and revert ───────────────────────────────────────────────────────────


class Todo(WireModel):
    id: str
    content: str
    status: Literal["pending", "in_progress", "completed", "cancelled"] = "pending"
    priority: Literal["high", "medium", "low"] = "medium"
    position: int | None = None


class RevertPointer(WireModel):
    """Checkpoint the session has been rolled back to. At most one is outstanding."""

    message_id: str = Field(alias="messageID")
    part_id: str | None = Field(default=None, alias="partID")
    snapshot: str | None = None
    diff: str | None = None
