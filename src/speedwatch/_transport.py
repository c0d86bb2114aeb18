"""HTTP transport for a realtime-database REST API.

Speaks the JSON REST dialect used by Firebase-style realtime databases:
every node is addressed as ``<database_url>/<path>.json``, writes return
``{"name": "<key>"}`` for pushed children, and live queries are served as
``text/event-stream`` responses carrying ``put``/``patch`` events.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from speedwatch._constants import USER_AGENT
from speedwatch._redact import redact_for_log, redact_url
from speedwatch.config import SpeedwatchConfig
from speedwatch.exceptions import SpeedwatchTransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamEvent:
    """One server-sent event from a live query."""

    event: str
    data: Any


class Transport(Protocol):
    """Structural transport interface used by stores and feeds.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`DatabaseTransport`) concrete.
    """

    async def get_json(self, path: str) -> Any: ...

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any]: ...

    def stream(self, path: str) -> AsyncIterator[StreamEvent]: ...


class SseParser:
    """Incremental ``text/event-stream`` parser.

    Feed it decoded lines (without the trailing newline); it returns a
    :class:`StreamEvent` whenever a blank line completes an event.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []

    def feed(self, line: str) -> StreamEvent | None:
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None

    def _dispatch(self) -> StreamEvent | None:
        event, data_lines = self._event, self._data
        self._event = ""
        self._data = []
        if not event and not data_lines:
            return None

        text = "\n".join(data_lines)
        try:
            data = json.loads(text) if text else None
        except json.JSONDecodeError:
            # cancel/auth_revoked carry plain-text reasons.
            data = text
        return StreamEvent(event=event or "message", data=data)


class DatabaseTransport:
    """HTTP transport bound to one realtime database."""

    def __init__(
        self,
        config: SpeedwatchConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session

    def _url(self, path: str) -> str:
        base = self._config.database_url.rstrip("/")
        node = path.strip("/")
        return f"{base}/{node}.json" if node else f"{base}/.json"

    def _params(self) -> dict[str, str]:
        if self._config.auth_token:
            return {"auth": self._config.auth_token}
        return {}

    def _headers(self, accept: str = "application/json") -> dict[str, str]:
        return {
            "accept": accept,
            "user-agent": USER_AGENT,
        }

    def _trace(self, method: str, path: str, payload: Any, result: Any) -> None:
        if not self._config.api_trace_enabled:
            return
        _logger.debug(
            "API trace %s %s request=%s response=%s",
            method,
            path,
            redact_for_log(payload),
            redact_for_log(result),
        )

    async def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        url = self._url(path)
        _logger.debug("%s %s", method, redact_url(url))

        try:
            async with self._http.request(
                method,
                url,
                params=self._params(),
                headers=self._headers(),
                json=dict(payload) if payload is not None else None,
            ) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise SpeedwatchTransportError(
                        f"HTTP {resp.status} from {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
        except SpeedwatchTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise SpeedwatchTransportError(
                f"Request to {path} failed: {exc}",
                path=path,
            ) from exc

        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SpeedwatchTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                path=path,
            ) from exc

        self._trace(method, path, payload, result)
        return result

    async def get_json(self, path: str) -> Any:
        """Read the value stored at *path* (``None`` when absent)."""
        return await self._request("GET", path)

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Push *payload* as a new child of *path*.

        Returns the decoded response, ``{"name": "<key>"}``.
        """
        result = await self._request("POST", path, payload)
        if not isinstance(result, dict):
            raise SpeedwatchTransportError(
                f"Unexpected push response from {path}: {result!r}",
                path=path,
            )
        return result

    async def stream(self, path: str) -> AsyncIterator[StreamEvent]:
        """Open a live query on *path* and yield its events.

        The iterator ends when the server closes the stream. Transport
        failures raise :class:`SpeedwatchTransportError`.
        """
        url = self._url(path)
        _logger.debug("STREAM %s", redact_url(url))
        parser = SseParser()

        try:
            async with self._http.get(
                url,
                params=self._params(),
                headers=self._headers("text/event-stream"),
                timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise SpeedwatchTransportError(
                        f"HTTP {resp.status} opening stream on {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
                async for raw_line in resp.content:
                    line = raw_line.decode("utf-8", errors="replace").rstrip("\r\n")
                    event = parser.feed(line)
                    if event is None:
                        continue
                    self._trace("EVENT", path, event.event, event.data)
                    yield event
        except SpeedwatchTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise SpeedwatchTransportError(
                f"Stream on {path} failed: {exc}",
                path=path,
            ) from exc
