"""Session event stream protocol: envelope, taxonomy and decoder."""

from echoline.protocol.decoder import decode_frame, describe_error, parse_frame
from echoline.protocol.frames import CHILD_EVENT_TYPES, Envelope, EventType, RoutingMeta

__all__ = [
    "CHILD_EVENT_TYPES",
    "Envelope",
    "EventType",
    "RoutingMeta",
    "decode_frame",
    "describe_error",
    "parse_frame",
]
