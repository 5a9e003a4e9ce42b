"""Echoline data models."""

from echoline.models.config import (
    EndpointConfig,
    HydrationConfig,
    ReconnectConfig,
    SyncConfig,
)
from echoline.models.message import (
    AgentPart,
    CompactionPart,
    FilePart,
    Message,
    MessageError,
    MessageTime,
    MessageWithParts,
    ModelRef,
    Part,
    PatchPart,
    ReasoningPart,
    RetryPart,
    SnapshotPart,
    StepFinishPart,
    StepStartPart,
    SubtaskPart,
    TextPart,
    TokenUsage,
    ToolPart,
    ToolRef,
    ToolState,
    UnknownPart,
)
from echoline.models.session import (
    IDLE,
    BusyStatus,
    ErrorStatus,
    IdleStatus,
    PermissionRequest,
    QuestionInfo,
    QuestionOption,
    QuestionRequest,
    RetryStatus,
    RevertPointer,
    SessionStatus,
    Todo,
)

__all__ = [
    # Config
    "EndpointConfig",
    "HydrationConfig",
    "ReconnectConfig",
    "SyncConfig",
    # Message parts
    "TextPart",
    "ReasoningPart",
    "ToolPart",
    "ToolState",
    "FilePart",
    "SubtaskPart",
    "StepStartPart",
    "StepFinishPart",
    "AgentPart",
    "RetryPart",
    "CompactionPart",
    "SnapshotPart",
    "PatchPart",
    "UnknownPart",
    "Part",
    # Message
    "TokenUsage",
    "MessageError",
    "MessageTime",
    "ModelRef",
    "ToolRef",
    "Message",
    "MessageWithParts",
    # Session
    "IDLE",
    "IdleStatus",
    "BusyStatus",
    "RetryStatus",
    "ErrorStatus",
    "SessionStatus",
    "PermissionRequest",
    "QuestionOption",
    "QuestionInfo",
    "QuestionRequest",
    "Todo",
    "RevertPointer",
]
