"""Telemetry sync controller.

Owns everything with process lifetime: the subscriptions, the marker
set, the suppress-update gate and the advisory.  Collaborators get
handles to these; nothing lives at module level.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from soilwatch._constants import USERS_ROOT, admin_path
from soilwatch.advisory import AdvisoryOpen, AdvisoryState, AdvisoryStateMachine, UpdateGate
from soilwatch.config import SoilwatchConfig
from soilwatch.evaluation import RangeEvaluator
from soilwatch.exceptions import SoilwatchAccessDeniedError, SoilwatchAdvisoryError, SoilwatchConfigError
from soilwatch.models.marker import Marker
from soilwatch.models.parameters import SoilParameter
from soilwatch.models.telemetry import TelemetrySnapshot
from soilwatch.reconcile import MarkerReconciler
from soilwatch.store import Subscription, TelemetryStore
from soilwatch.surface import VIEWPORT_EVENTS, MapSurface

_logger = logging.getLogger(__name__)


class TelemetrySyncController:
    """Keeps the map in sync with the ``Users`` tree.

    Usage::

        async with FirebaseStore(config) as store:
            async with TelemetrySyncController(config, store, surface) as controller:
                ...

    Raises
    ------
    SoilwatchConfigError
        If ``config.admin`` is empty.
    """

    def __init__(
        self,
        config: SoilwatchConfig,
        store: TelemetryStore,
        surface: MapSurface,
        *,
        evaluator: RangeEvaluator | None = None,
    ) -> None:
        if not config.admin:
            raise SoilwatchConfigError("An admin identity is required (e.g. SOILWATCH_ADMIN=bacofa)")
        self._config = config
        self._store = store
        self._surface = surface

        self._markers: dict[str, Marker] = {}
        self._gate = UpdateGate(cooldown=config.suppress_cooldown)
        self._reconciler = MarkerReconciler(surface, self._markers, evaluator=evaluator)
        self._advisory = AdvisoryStateMachine(
            store=store,
            surface=surface,
            gate=self._gate,
            markers=self._markers,
        )

        self._identity_valid = False
        self._subscription: Subscription | None = None
        self._channel: asyncio.Queue[TelemetrySnapshot] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._unregister_viewport: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TelemetrySyncController:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def gate(self) -> UpdateGate:
        return self._gate

    @property
    def advisory(self) -> AdvisoryStateMachine:
        return self._advisory

    @property
    def markers(self) -> Mapping[str, Marker]:
        return MappingProxyType(self._markers)

    @property
    def identity_valid(self) -> bool:
        return self._identity_valid

    # ------------------------------------------------------------------
    # Startup / shutdown
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Validate the operator identity, then start syncing.

        Raises
        ------
        SoilwatchAccessDeniedError
            If ``Admin/<admin>`` does not exist.
        SoilwatchConfigError
            If the identity lookup does not answer in time.
        """
        if self._subscription is not None:
            return
        await self._validate_identity()

        self._consumer = asyncio.get_running_loop().create_task(self._consume(), name="soilwatch-reconcile")
        self._subscription = self._store.subscribe(USERS_ROOT, self._channel.put_nowait)
        self._unregister_viewport = self._surface.on_viewport_change(self.on_viewport_change)
        _logger.debug("Subscribed to %s", USERS_ROOT)

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._unregister_viewport is not None:
            self._unregister_viewport()
            self._unregister_viewport = None
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer
        self._gate.close()
        self._advisory.close()

    async def _validate_identity(self) -> None:
        admin = self._config.admin
        loop = asyncio.get_running_loop()
        answer: asyncio.Future[TelemetrySnapshot] = loop.create_future()

        def _on_snapshot(snapshot: TelemetrySnapshot) -> None:
            if not answer.done():
                answer.set_result(snapshot)

        subscription = self._store.subscribe(admin_path(admin), _on_snapshot)
        try:
            snapshot = await asyncio.wait_for(answer, self._config.identity_timeout)
        except TimeoutError as exc:
            raise SoilwatchConfigError(f"Admin lookup for {admin!r} timed out") from exc
        finally:
            subscription.cancel()

        if not snapshot.exists:
            raise SoilwatchAccessDeniedError(f"Access denied: admin username {admin!r} not found")
        self._identity_valid = True
        _logger.info("Admin access granted: %s", admin)

    # ------------------------------------------------------------------
    # Snapshot channel
    # ------------------------------------------------------------------

    async def _consume(self) -> None:
        while True:
            snapshot = await self._channel.get()
            try:
                self.handle_snapshot(snapshot)
            except Exception:
                _logger.exception("Reconciliation failed")

    def handle_snapshot(self, snapshot: TelemetrySnapshot) -> bool:
        """Reconcile markers against *snapshot*; returns ``False`` if it was ignored."""
        if self._gate.suppressed or not self._identity_valid:
            _logger.debug("Snapshot ignored (suppressed=%s)", self._gate.suppressed)
            return False
        self._reconciler.reconcile(snapshot.value)
        return True

    # ------------------------------------------------------------------
    # UI affordances
    # ------------------------------------------------------------------

    def open_advisory(self, marker_id: str, parameter: SoilParameter | str) -> AdvisoryState | None:
        """Info button pressed on a marker row.

        Returns the new advisory state, or ``None`` if the press was
        ignored (unknown marker/row, or the affordance is disabled).
        """
        parameter = SoilParameter(parameter)
        marker = self._markers.get(marker_id)
        row = marker.panel.row(parameter) if marker is not None else None
        if row is None or row.affordance.disabled:
            return None
        return self._advisory.request_open(
            marker_id,
            parameter,
            row.value,
            self._reconciler.evaluator.range_for(parameter),
            node=self._reconciler.node(marker_id),
        )

    async def acknowledge_active(self) -> bool:
        """Done button pressed on the open advisory."""
        state = self._advisory.state
        if not isinstance(state, AdvisoryOpen) or state.node is None:
            raise SoilwatchAdvisoryError("No open advisory to acknowledge")
        return await self._advisory.acknowledge(state.node, state.parameter)

    def on_map_click(self) -> None:
        self._advisory.close()

    def on_viewport_change(self, event: str) -> None:
        if event in VIEWPORT_EVENTS:
            self._advisory.reposition()
