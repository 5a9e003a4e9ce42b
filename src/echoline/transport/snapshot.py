"""HTTP snapshot source with retries for sessions that are still starting."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from echoline.models.config import EndpointConfig, HydrationConfig
from echoline.transport.base import SnapshotError

_logger = structlog.get_logger("echoline.transport.snapshot")


class HttpSnapshotSource:
    """
    Reads snapshots from the session HTTP API.

    Responses whose status is listed in ``HydrationConfig.retryable_statuses``
    (503 by default, returned while a session's sandbox is booting) are
    retried with delays of ``min(base_delay * 2**attempt, max_delay)``.
    Any other error status fails immediately.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: EndpointConfig,
        config: HydrationConfig | None = None,
    ) -> None:
        self._client = client
        self._endpoint = endpoint
        self._config = config or HydrationConfig()

    async def fetch_messages(self, session_id: str) -> Any:
        url = self._endpoint.url(self._endpoint.messages_path, session_id=session_id)
        return await self._get_json(session_id, url)

    async def fetch_child(self, session_id: str, child_id: str) -> Any:
        url = self._endpoint.url(
            self._endpoint.child_messages_path, session_id=session_id, child_id=child_id
        )
        return await self._get_json(session_id, url)

    async def _get_json(self, session_id: str, url: str) -> Any:
        cfg = self._config
        attempt = 0
        while True:
            try:
                response = await self._client.get(
                    url, headers=self._endpoint.headers, timeout=cfg.timeout
                )
            except httpx.HTTPError as exc:
                raise SnapshotError(session_id, str(exc) or type(exc).__name__) from exc

            if response.status_code in cfg.retryable_statuses and attempt < cfg.max_retries:
                delay = min(cfg.base_delay * 2**attempt, cfg.max_delay)
                _logger.debug(
                    "snapshot_retry_scheduled",
                    session_id=session_id,
                    status_code=response.status_code,
                    attempt=attempt + 1,
                    delay=delay,
                )
                attempt += 1
                await asyncio.sleep(delay)
                continue

            if response.is_error:
                raise SnapshotError(
                    session_id,
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            try:
                return response.json()
            except ValueError as exc:
                raise SnapshotError(session_id, "response body is not JSON") from exc
