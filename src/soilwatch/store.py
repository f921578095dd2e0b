"""Telemetry store interface and the Firebase Realtime Database adapter."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any, Protocol

import aiohttp

from soilwatch._redact import redact_for_log
from soilwatch._transport import FirebaseTransport
from soilwatch.config import SoilwatchConfig
from soilwatch.exceptions import SoilwatchError, SoilwatchTransportError
from soilwatch.models.telemetry import TelemetrySnapshot
from soilwatch.state.tree import SnapshotTree

_logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[TelemetrySnapshot], None]


class Subscription(Protocol):
    def cancel(self) -> None: ...


class TelemetryStore(Protocol):
    """Structural store interface used by the controller and advisory.

    ``subscribe`` delivers the full subtree at *path* on every change,
    starting with its current value.
    """

    def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> Subscription: ...

    async def write(self, path: str, value: Any) -> None: ...


class StreamSubscription:
    """A live stream on one path, delivering snapshots to a callback."""

    def __init__(
        self,
        transport: FirebaseTransport,
        path: str,
        on_snapshot: SnapshotCallback,
        *,
        reconnect_delay: float,
        on_closed: Callable[[StreamSubscription], None] | None = None,
    ) -> None:
        self._transport = transport
        self._path = path
        self._on_snapshot = on_snapshot
        self._reconnect_delay = reconnect_delay
        self._on_closed = on_closed
        self._tree = SnapshotTree()
        self._task: asyncio.Task[None] | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.active:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"soilwatch-stream:{self._path}")
        self._task.add_done_callback(self._finished)

    def cancel(self) -> None:
        task = self._task
        if task is not None and not task.done():
            task.cancel()

    def _finished(self, task: asyncio.Task[None]) -> None:
        if self._on_closed is not None:
            self._on_closed(self)

    async def wait_closed(self) -> None:
        task = self._task
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            try:
                ended = await self._consume()
            except SoilwatchTransportError:
                _logger.debug("Stream on %s dropped", self._path, exc_info=True)
                ended = False
            if ended:
                return
            _logger.debug("Reconnecting stream on %s in %.1fs", self._path, self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)

    async def _consume(self) -> bool:
        """Read one connection; returns ``True`` if the server ended the stream for good."""
        async for event in self._transport.stream(self._path):
            if event.terminal:
                _logger.warning("Stream on %s closed by server: %s %s", self._path, event.type, event.data)
                return True
            if not self._tree.apply(event):
                continue
            _logger.debug(
                "Stream %s %s path=%s data=%s",
                self._path,
                event.type,
                event.path,
                redact_for_log(event.data, max_items=10),
            )
            self._deliver()
        return False

    def _deliver(self) -> None:
        snapshot = TelemetrySnapshot(path=self._path, value=self._tree.snapshot())
        try:
            self._on_snapshot(snapshot)
        except Exception:
            _logger.exception("Snapshot callback for %s failed", self._path)


class FirebaseStore:
    """Realtime Database over the REST streaming API.

    Usage::

        async with FirebaseStore(config) as store:
            sub = store.subscribe("Users", handle)
    """

    def __init__(self, config: SoilwatchConfig, *, session: aiohttp.ClientSession | None = None) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: FirebaseTransport | None = None
        self._subscriptions: list[StreamSubscription] = []

    async def __aenter__(self) -> FirebaseStore:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = FirebaseTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()
        for subscription in subscriptions:
            await subscription.wait_closed()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    @property
    def subscriptions(self) -> tuple[StreamSubscription, ...]:
        """Subscriptions whose stream task is still running."""
        return tuple(self._subscriptions)

    def _forget(self, subscription: StreamSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _require_transport(self) -> FirebaseTransport:
        if self._transport is None:
            raise SoilwatchError("Store not initialized. Use 'async with FirebaseStore(...) as store:'")
        return self._transport

    def subscribe(self, path: str, on_snapshot: SnapshotCallback) -> StreamSubscription:
        subscription = StreamSubscription(
            self._require_transport(),
            path,
            on_snapshot,
            reconnect_delay=self._config.reconnect_delay,
            on_closed=self._forget,
        )
        subscription.start()
        self._subscriptions.append(subscription)
        return subscription

    async def write(self, path: str, value: Any) -> None:
        await self._require_transport().put_json(path, value)
