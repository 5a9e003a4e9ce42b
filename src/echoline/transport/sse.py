"""Server-sent events transport built on ``httpx``."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import structlog

from echoline.models.config import EndpointConfig
from echoline.transport.base import TransportError

_logger = structlog.get_logger("echoline.transport.sse")


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Group SSE lines into event payloads.

    ``data:`` lines are accumulated (joined with ``\\n``) until a blank line
    ends the event. Comment lines (``:``) and other fields (``event:``,
    ``id:``, ``retry:``) are ignored; the envelope carries its own type. An
    event left unterminated when the stream ends is discarded.
    """
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield "\n".join(data)
                data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field != "data":
            continue
        data.append(value[1:] if value.startswith(" ") else value)


class SseConnection:
    """An open SSE response. Iterate for frames, ``aclose()`` to release it."""

    def __init__(self, session_id: str, response: httpx.Response) -> None:
        self._session_id = session_id
        self._response = response

    def __aiter__(self) -> AsyncIterator[str]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[str]:
        try:
            async for payload in iter_sse_data(self._response.aiter_lines()):
                yield payload
        except httpx.HTTPError as exc:
            raise TransportError(self._session_id, str(exc) or type(exc).__name__) from exc

    async def aclose(self) -> None:
        await self._response.aclose()


class SseTransport:
    """
    Opens ``GET {base_url}{events_path}`` as a long-lived SSE response.

    The client is borrowed, not owned: closing it is the caller's job.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: EndpointConfig) -> None:
        self._client = client
        self._endpoint = endpoint

    async def connect(self, session_id: str) -> SseConnection:
        url = self._endpoint.url(self._endpoint.events_path, session_id=session_id)
        request = self._client.build_request(
            "GET",
            url,
            headers={
                "Accept": "text/event-stream",
                "Cache-Control": "no-cache",
                **self._endpoint.headers,
            },
            timeout=httpx.Timeout(10.0, read=self._endpoint.read_timeout),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(session_id, str(exc) or type(exc).__name__) from exc

        if response.status_code != 200:
            await response.aclose()
            raise TransportError(
                session_id, f"HTTP {response.status_code}", status_code=response.status_code
            )

        _logger.debug("sse_response_opened", session_id=session_id, url=url)
        return SseConnection(session_id, response)
