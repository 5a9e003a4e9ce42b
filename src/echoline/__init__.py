"""
Echoline: live, read-only projections of remote agent sessions.

Primary entry point::

    from echoline import SessionSync, SyncEvent

    async with SessionSync.open("ses_123") as sync:
        sync.subscribe_events(SyncEvent.STATE_CHANGED, on_change)
        for message in sync.view.messages:
            print(message.id, message.role)
"""

from importlib.metadata import PackageNotFoundError, version

from echoline.session import SessionSync, make_id
from echoline.models import (
    SyncConfig,
    EndpointConfig,
    HydrationConfig,
    ReconnectConfig,
    Message,
    MessageWithParts,
    Part,
    TextPart,
    ToolPart,
    SessionStatus,
    PermissionRequest,
    QuestionRequest,
    Todo,
)
from echoline.events.bus import EventBus, SyncEvent
from echoline.projection import ProjectionState, ProjectionView, reduce
from echoline.protocol import decode_frame
from echoline.sync import EventStreamSupervisor, HydrationLoader, Snapshot, backoff_delay
from echoline.transport import (
    EcholineError,
    HttpSnapshotSource,
    SnapshotError,
    SnapshotSource,
    SseTransport,
    Transport,
    TransportError,
)

try:
    __version__ = version("echoline")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

__all__ = [
    # Core
    "SessionSync",
    "make_id",
    # Config
    "SyncConfig",
    "EndpointConfig",
    "HydrationConfig",
    "ReconnectConfig",
    # Models
    "Message",
    "MessageWithParts",
    "Part",
    "TextPart",
    "ToolPart",
    "SessionStatus",
    "PermissionRequest",
    "QuestionRequest",
    "Todo",
    # Events
    "EventBus",
    "SyncEvent",
    # Projection
    "ProjectionState",
    "ProjectionView",
    "reduce",
    "decode_frame",
    # Sync
    "EventStreamSupervisor",
    "HydrationLoader",
    "Snapshot",
    "backoff_delay",
    # Transport
    "EcholineError",
    "HttpSnapshotSource",
    "SnapshotError",
    "SnapshotSource",
    "SseTransport",
    "Transport",
    "TransportError",
]
