"""soilwatch - Live soil-telemetry map sync and advisory engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("soilwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from soilwatch.advisory import (
    AdvisoryClosed,
    AdvisoryOpen,
    AdvisoryStateMachine,
    UpdateGate,
    acknowledgment_disabled,
    compute_position,
)
from soilwatch.config import SoilwatchConfig
from soilwatch.controller import TelemetrySyncController
from soilwatch.evaluation import Direction, RangeEvaluation, RangeEvaluator, evaluate
from soilwatch.exceptions import (
    SoilwatchAccessDeniedError,
    SoilwatchAdvisoryError,
    SoilwatchConfigError,
    SoilwatchDataShapeError,
    SoilwatchError,
    SoilwatchTransportError,
    SoilwatchWriteError,
)
from soilwatch.models import (
    DEFAULT_RANGES,
    Coordinates,
    DetailPanel,
    Marker,
    Node,
    Packet,
    ParameterRange,
    ParameterRow,
    SoilParameter,
    TelemetrySnapshot,
)
from soilwatch.reconcile import MarkerReconciler
from soilwatch.store import FirebaseStore, Subscription, TelemetryStore
from soilwatch.surface import MapSurface, ScreenPosition, ScreenRect, ScreenSize

__all__ = [
    "__version__",
    "DEFAULT_RANGES",
    "AdvisoryClosed",
    "AdvisoryOpen",
    "AdvisoryStateMachine",
    "Coordinates",
    "DetailPanel",
    "Direction",
    "FirebaseStore",
    "MapSurface",
    "Marker",
    "MarkerReconciler",
    "Node",
    "Packet",
    "ParameterRange",
    "ParameterRow",
    "RangeEvaluation",
    "RangeEvaluator",
    "ScreenPosition",
    "ScreenRect",
    "ScreenSize",
    "SoilParameter",
    "SoilwatchAccessDeniedError",
    "SoilwatchAdvisoryError",
    "SoilwatchConfig",
    "SoilwatchConfigError",
    "SoilwatchDataShapeError",
    "SoilwatchError",
    "SoilwatchTransportError",
    "SoilwatchWriteError",
    "Subscription",
    "TelemetrySnapshot",
    "TelemetryStore",
    "TelemetrySyncController",
    "UpdateGate",
    "acknowledgment_disabled",
    "compute_position",
    "evaluate",
]
