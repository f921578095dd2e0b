"""HTTP transport for the Firebase Realtime Database REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import aiohttp

from soilwatch._redact import redact_url
from soilwatch.config import SoilwatchConfig
from soilwatch.exceptions import SoilwatchDataShapeError, SoilwatchTransportError, SoilwatchWriteError
from soilwatch.state.events import StreamEvent, decode_stream_event

_logger = logging.getLogger(__name__)


class SseDecoder:
    """Incremental server-sent-events decoder.

    Feed decoded lines (without the trailing newline); a blank line
    completes a frame.
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
        event, data = self._event, "\n".join(self._data)
        self._event = ""
        self._data = []
        if not event:
            return None
        return decode_stream_event(event, data)


async def _iter_lines(content: aiohttp.StreamReader) -> AsyncIterator[str]:
    """Split a response body into lines without a per-line size limit.

    A single ``put`` frame carries the whole subtree, which can be far
    larger than the reader's line buffer.
    """
    buffer = b""
    async for chunk in content.iter_any():
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for line in lines:
            yield line.decode("utf-8", errors="replace").rstrip("\r")
    if buffer:
        yield buffer.decode("utf-8", errors="replace").rstrip("\r")


class FirebaseTransport:
    """Reads, writes and streams JSON at database paths."""

    def __init__(self, config: SoilwatchConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def url_for(self, path: str) -> str:
        encoded = "/".join(quote(segment, safe="") for segment in path.strip("/").split("/") if segment)
        return f"{self._config.database_url}/{encoded}.json"

    def _params(self) -> dict[str, str]:
        if self._config.auth_token:
            return {"auth": self._config.auth_token}
        return {}

    async def put_json(self, path: str, value: Any) -> None:
        """Replace the value at *path*.

        Raises
        ------
        SoilwatchWriteError
            On network failure, timeout or a non-2xx status.
        """
        url = self.url_for(path)
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        _logger.debug("PUT %s", redact_url(url))
        try:
            async with self._http.put(
                url,
                data=json.dumps(value, separators=(",", ":")),
                params=self._params(),
                headers={"content-type": "application/json; charset=UTF-8"},
                timeout=timeout,
            ) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise SoilwatchWriteError(
                        f"HTTP {resp.status} writing {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
        except SoilwatchWriteError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SoilwatchWriteError(f"Write to {path} failed: {exc}", path=path) from exc

    async def stream(self, path: str) -> AsyncIterator[StreamEvent]:
        """Open an event stream on *path* and yield events until it ends.

        Raises
        ------
        SoilwatchTransportError
            If the stream cannot be opened.
        """
        url = self.url_for(path)
        _logger.debug("STREAM %s", redact_url(url))
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=self._config.request_timeout)
        try:
            async with self._http.get(
                url,
                params=self._params(),
                headers={"accept": "text/event-stream"},
                timeout=timeout,
            ) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise SoilwatchTransportError(
                        f"HTTP {resp.status} streaming {path}: {text[:200]}",
                        status_code=resp.status,
                        path=path,
                    )
                decoder = SseDecoder()
                async for line in _iter_lines(resp.content):
                    try:
                        event = decoder.feed(line)
                    except SoilwatchDataShapeError:
                        _logger.warning("Dropping malformed stream frame on %s", path, exc_info=True)
                        continue
                    if event is not None:
                        yield event
        except SoilwatchTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise SoilwatchTransportError(f"Stream on {path} failed: {exc}", path=path) from exc
