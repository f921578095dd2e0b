"""Data models for telemetry snapshots and rendered markers."""

from soilwatch.models._base import SoilBaseModel, parse_number
from soilwatch.models.marker import AckAffordance, AdvisoryContent, DetailPanel, Marker, ParameterRow
from soilwatch.models.parameters import DEFAULT_RANGES, ParameterRange, SoilParameter
from soilwatch.models.telemetry import Coordinates, Node, Packet, TelemetrySnapshot, iter_tenant_nodes

__all__ = [
    "DEFAULT_RANGES",
    "AckAffordance",
    "AdvisoryContent",
    "Coordinates",
    "DetailPanel",
    "Marker",
    "Node",
    "Packet",
    "ParameterRange",
    "ParameterRow",
    "SoilBaseModel",
    "SoilParameter",
    "TelemetrySnapshot",
    "iter_tenant_nodes",
    "parse_number",
]
