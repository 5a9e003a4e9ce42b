"""Snapshot hydration and live-stream supervision."""

from echoline.sync.hydration import HydrationLoader, Snapshot, normalize_snapshot
from echoline.sync.supervisor import EventStreamSupervisor, backoff_delay

__all__ = [
    "EventStreamSupervisor",
    "HydrationLoader",
    "Snapshot",
    "backoff_delay",
    "normalize_snapshot",
]
