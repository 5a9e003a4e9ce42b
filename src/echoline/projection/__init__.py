"""Session projection: actions, immutable state, reducer and derived views."""

from echoline.projection.actions import (
    Action,
    ChildAction,
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
    PrimaryAction,
    QuestionAsked,
    QuestionReplied,
    SessionError,
    SessionUpdated,
    StatusSet,
    TodosReplaced,
)
from echoline.projection.reducer import reduce
from echoline.projection.state import INITIAL_STATE, ChildProjection, ProjectionState
from echoline.projection.view import ProjectionView

__all__ = [
    # Actions
    "Action",
    "PrimaryAction",
    "ChildAction",
    "MessageUpdated",
    "MessageRemoved",
    "PartUpdated",
    "PartRemoved",
    "StatusSet",
    "PermissionAsked",
    "PermissionReplied",
    "QuestionAsked",
    "QuestionReplied",
    "TodosReplaced",
    "SessionUpdated",
    "SessionError",
    "Init",
    "Connected",
    "Disconnected",
    "Clear",
    "ChildMessageUpdated",
    "ChildMessageRemoved",
    "ChildPartUpdated",
    "ChildPartRemoved",
    "ChildStatusSet",
    "ChildInit",
    # State
    "INITIAL_STATE",
    "ChildProjection",
    "ProjectionState",
    "reduce",
    # Views
    "ProjectionView",
]
