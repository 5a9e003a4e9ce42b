"""
Snapshot hydration.

The snapshot is best effort: the live stream is the long-term source of
truth, so a failed fetch only delays visibility and never blocks
connecting.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from echoline.events.bus import EventBus, SyncEvent
from echoline.models.config import HydrationConfig
from echoline.models.message import Message, Part
from echoline.transport.base import SnapshotSource

_logger = structlog.get_logger("echoline.hydration")

_part_adapter: TypeAdapter[Part] = TypeAdapter(Part)


class Snapshot(BaseModel):
    """Messages and parts of a session at one point in time."""

    messages: list[Message] = Field(default_factory=list)
    parts: list[Part] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.messages and not self.parts


def _collect_parts(raw: Any, into: list[Part]) -> None:
    if not isinstance(raw, list):
        return
    for item in raw:
        try:
            into.append(_part_adapter.validate_python(item))
        except ValidationError as exc:
            _logger.debug("snapshot_part_skipped", error=str(exc))


def _collect_message(raw: Any, into: list[Message]) -> None:
    try:
        into.append(Message.model_validate(raw))
    except ValidationError as exc:
        _logger.debug("snapshot_message_skipped", error=str(exc))


def _collect_items(items: Iterable[Any], messages: list[Message], parts: list[Part]) -> None:
    for item in items:
        if not isinstance(item, Mapping):
            continue
        if item.get("info") is not None:
            _collect_message(item["info"], messages)
        elif "role" in item:
            # A self-describing message record, possibly embedding its parts.
            _collect_message({k: v for k, v in item.items() if k != "parts"}, messages)
        _collect_parts(item.get("parts"), parts)


def normalize_snapshot(data: Any) -> Snapshot:
    """
    Normalise any accepted snapshot shape into a :class:`Snapshot`.

    Accepted shapes:

    - grouped: ``{"messages": [{"info": {...}, "parts": [...]}, ...]}``
    - flat: ``[{"info": {...}, "parts": [...]}, ...]`` or
      ``[{"id": ..., "role": ..., "parts": [...]}, ...]``
    - child: ``{"messages": [{...message...}], "parts": [...]}``

    Records that fail validation are skipped individually.
    """
    messages: list[Message] = []
    parts: list[Part] = []

    if isinstance(data, Mapping):
        if isinstance(data.get("messages"), list):
            _collect_items(data["messages"], messages, parts)
        _collect_parts(data.get("parts"), parts)
    elif isinstance(data, list):
        _collect_items(data, messages, parts)
    else:
        _logger.debug("snapshot_unrecognised_shape", kind=type(data).__name__)

    return Snapshot(messages=messages, parts=parts)


class HydrationLoader:
    """
    Fetches and normalises session snapshots.

    Never raises for fetch or decode problems: failures are logged,
    published as :attr:`SyncEvent.HYDRATION_FAILED` and reported as ``None``.
    Cancellation still propagates so teardown can stop an in-flight fetch.
    """

    def __init__(
        self,
        source: SnapshotSource,
        config: HydrationConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._source = source
        self._config = config or HydrationConfig()
        self._event_bus = event_bus or EventBus()

    async def load(self, session_id: str) -> Snapshot | None:
        """
        Fetch the snapshot for *session_id*.

        Returns:
            The normalised snapshot, or None when the fetch failed or
            hydration is disabled.
        """
        if not self._config.enabled:
            _logger.debug("hydration_disabled", session_id=session_id)
            return None
        try:
            data = await self._source.fetch_messages(session_id)
        except Exception as exc:
            self._report_failure(session_id, None, exc)
            return None
        return self._report_success(session_id, None, normalize_snapshot(data))

    async def load_child(self, session_id: str, child_id: str) -> Snapshot | None:
        """Fetch the snapshot of one child session of *session_id*."""
        if not self._config.enabled:
            _logger.debug("hydration_disabled", session_id=session_id, child_id=child_id)
            return None
        try:
            data = await self._source.fetch_child(session_id, child_id)
        except Exception as exc:
            self._report_failure(session_id, child_id, exc)
            return None
        return self._report_success(session_id, child_id, normalize_snapshot(data))

    def _report_success(self, session_id: str, child_id: str | None, snapshot: Snapshot) -> Snapshot:
        _logger.info(
            "hydration_completed",
            session_id=session_id,
            child_id=child_id,
            messages=len(snapshot.messages),
            parts=len(snapshot.parts),
        )
        self._event_bus.publish(
            SyncEvent.HYDRATED,
            {
                "session_id": session_id,
                "child_id": child_id,
                "messages": len(snapshot.messages),
                "parts": len(snapshot.parts),
            },
        )
        return snapshot

    def _report_failure(self, session_id: str, child_id: str | None, exc: Exception) -> None:
        _logger.warning(
            "hydration_failed", session_id=session_id, child_id=child_id, error=str(exc)
        )
        self._event_bus.publish(
            SyncEvent.HYDRATION_FAILED,
            {"session_id": session_id, "child_id": child_id, "error": str(exc)},
        )
