"""Message and part records as they appear on the session event stream."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class WireModel(BaseModel):
    """
    Base for every record received from the server.

    Wire keys are camelCase (``sessionID``, ``messageID``); attributes are
    snake_case via aliases. Unknown keys are kept so that a wholesale
    replacement never drops server data this client does not model.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", protected_namespaces=())


# ── Shared fragments ───────────────────────────────────────────────────────────


class TimeSpan(BaseModel):
    """Start/end pair in Unix milliseconds."""

    start: int = 0
    end: int | None = None


class CacheTokens(BaseModel):
    read: int = 0
    write: int = 0


class TokenUsage(BaseModel):
    """Token counters reported for an assistant message or a finished step."""

    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache: CacheTokens = Field(default_factory=CacheTokens)


class MessageError(WireModel):
    """Structured error attached to an assistant message or a retry part."""

    type: str | None = None
    name: str | None = None
    message: str | None = None


class ToolRef(WireModel):
    """Back-reference from a prompt (permission/question) to the tool call that raised it."""

    message_id: str = Field(alias="messageID")
    call_id: str = Field(alias="callID")


# ── Part Models ────────────────────────────────────────────────────────────────


class PartBase(WireModel):
    """Fields common to every part. ``message_id`` is a back-reference, not ownership."""

    id: str
    session_id: str = Field(default="", alias="sessionID")
    message_id: str = Field(alias="messageID")


class TextPart(PartBase):
    """A plain text segment of a message."""

    type: Literal["text"] = "text"
    text: str = ""
    synthetic: bool | None = None
    ignored: bool | None = None
    time: TimeSpan | None = None


class ReasoningPart(PartBase):
    """Chain-of-thought reasoning text."""

    type: Literal["reasoning"] = "reasoning"
    text: str = ""
    time: TimeSpan | None = None


class ToolStatePending(BaseModel):
    status: Literal["pending"] = "pending"
    input: dict[str, Any] = Field(default_factory=dict)
    raw: str = ""


class ToolStateRunning(BaseModel):
    status: Literal["running"] = "running"
    input: dict[str, Any] = Field(default_factory=dict)
    title: str | None = None
    metadata: dict[str, Any] | None = None
    time: TimeSpan = Field(default_factory=TimeSpan)


class ToolStateCompleted(BaseModel):
    status: Literal["completed"] = "completed"
    input: dict[str, Any] = Field(default_factory=dict)
    output: str = ""
    title: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    time: TimeSpan = Field(default_factory=TimeSpan)


class ToolStateError(BaseModel):
    status: Literal["error"] = "error"
    input: dict[str, Any] = Field(default_factory=dict)
    error: str = ""
    time: TimeSpan = Field(default_factory=TimeSpan)


ToolState = Annotated[
    ToolStatePending | ToolStateRunning | ToolStateCompleted | ToolStateError,
    Field(discriminator="status"),
]


class ToolPart(PartBase):
    """A tool call and its current lifecycle state."""

    type: Literal["tool"] = "tool"
    call_id: str = Field(alias="callID")
    tool: str
    state: ToolState
    metadata: dict[str, Any] | None = None

    @property
    def is_finished(self) -> bool:
        return self.state.status in ("completed", "error")


class FilePart(PartBase):
    """An attached or produced file, referenced by URL."""

    type: Literal["file"] = "file"
    mime: str = ""
    filename: str | None = None
    url: str = ""


class SubtaskPart(PartBase):
    """A sub-agent invocation; its conversation streams as a child session."""

    type: Literal["subtask"] = "subtask"
    prompt: str = ""
    description: str = ""
    agent: str = ""
    command: str | None = None


class StepStartPart(PartBase):
    """Marker for the start of an agentic step within a turn."""

    type: Literal["step-start"] = "step-start"


class StepFinishPart(PartBase):
    """Marker for the end of an agentic step, including token usage."""

    type: Literal["step-finish"] = "step-finish"
    reason: str = ""
    cost: float = 0.0
    tokens: TokenUsage = Field(default_factory=TokenUsage)


class AgentPart(PartBase):
    type: Literal["agent"] = "agent"
    name: str = ""


class RetryPart(PartBase):
    """A provider retry recorded inside an assistant message."""

    type: Literal["retry"] = "retry"
    attempt: int = 0
    error: MessageError = Field(default_factory=MessageError)
    time: dict[str, int] = Field(default_factory=dict)


class CompactionPart(PartBase):
    type: Literal["compaction"] = "compaction"
    auto: bool = False


class SnapshotPart(PartBase):
    type: Literal["snapshot"] = "snapshot"
    snapshot: str = ""


class PatchPart(PartBase):
    """Files changed during a step, identified by a snapshot hash."""

    type: Literal["patch"] = "patch"
    hash: str = ""
    files: list[str] = Field(default_factory=list)


class UnknownPart(PartBase):
    """
    Any part type this client does not model.

    The payload is kept verbatim in the model extras so that a newer server
    never causes a whole frame to be dropped.
    """

    type: str


_PART_TYPES: frozenset[str] = frozenset(
    {
        "text",
        "reasoning",
        "tool",
        "file",
        "subtask",
        "step-start",
        "step-finish",
        "agent",
        "retry",
        "compaction",
        "snapshot",
        "patch",
    }
)


def _part_tag(value: Any) -> str:
    part_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return part_type if isinstance(part_type, str) and part_type in _PART_TYPES else "unknown"


# ``type`` selects the variant; anything else is UnknownPart.
Part = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ReasoningPart, Tag("reasoning")],
        Annotated[ToolPart, Tag("tool")],
        Annotated[FilePart, Tag("file")],
        Annotated[SubtaskPart, Tag("subtask")],
        Annotated[StepStartPart, Tag("step-start")],
        Annotated[StepFinishPart, Tag("step-finish")],
        Annotated[AgentPart, Tag("agent")],
        Annotated[RetryPart, Tag("retry")],
        Annotated[CompactionPart, Tag("compaction")],
        Annotated[SnapshotPart, Tag("snapshot")],
        Annotated[PatchPart, Tag("patch")],
        Annotated[UnknownPart, Tag("unknown")],
    ],
    Discriminator(_part_tag),
]


# ── Message Models ─────────────────────────────────────────────────────────────


class MessageTime(BaseModel):
    created: int = 0
    """Unix millisecond timestamp."""
    completed: int | None = None


class ModelRef(WireModel):
    """Provider/model pair chosen for a user message."""

    provider_id: str = Field(default="", alias="providerID")
    model_id: str = Field(default="", alias="modelID")


class Message(WireModel):
    """
    A single conversation message.

    Messages are replaced wholesale on every ``message.updated`` event; the
    projection never merges fields from an older version.
    """

    id: str
    session_id: str = Field(default="", alias="sessionID")
    role: Literal["user", "assistant"]
    time: MessageTime = Field(default_factory=MessageTime)
    agent: str = ""
    # User-only fields
    model: ModelRef | None = None
    system: str | None = None
    # Assistant-only fields
    parent_id: str | None = Field(default=None, alias="parentID")
    model_id: str | None = Field(default=None, alias="modelID")
    provider_id: str | None = Field(default=None, alias="providerID")
    mode: str | None = None
    cost: float = 0.0
    tokens: TokenUsage | None = None
    finish: str | None = None
    error: MessageError | None = None


class MessageWithParts(WireModel):
    """A message together with its parts, as served by the grouped snapshot shape."""

    message: Message = Field(alias="info")
    parts: list[Part] = Field(default_factory=list)

    def text_content(self) -> str:
        """Concatenate text from all TextPart objects in this message."""
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))
