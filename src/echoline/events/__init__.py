"""Echoline event bus."""

from echoline.events.bus import EventBus, Handler, SyncEvent
from echoline.events.payloads import (
    ConnectedPayload,
    ConnectionExhaustedPayload,
    DisconnectedPayload,
    HydratedPayload,
    HydrationFailedPayload,
    StateChangedPayload,
    SubscriptionPayload,
)

__all__ = [
    "ConnectedPayload",
    "ConnectionExhaustedPayload",
    "DisconnectedPayload",
    "EventBus",
    "Handler",
    "HydratedPayload",
    "HydrationFailedPayload",
    "StateChangedPayload",
    "SubscriptionPayload",
    "SyncEvent",
]
