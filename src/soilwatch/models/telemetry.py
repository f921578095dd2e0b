"""Telemetry tree models.

The store keeps one tree per tenant::

    Users/<tenant>/Farm/Nodes/<node>/
        Coordinates: {X: <lng>, Y: <lat>}
        Packets/<key>: {<param>: <reading>, Disabled_<Param>_done: <ts>}

Packets are insertion ordered; the last one is authoritative.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterator, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from soilwatch.exceptions import SoilwatchDataShapeError
from soilwatch.models._base import SoilBaseModel, parse_number
from soilwatch.models.parameters import SoilParameter

_ACK_KEY = re.compile(r"^Disabled_(?P<param>.+)_done$")


class Coordinates(SoilBaseModel):
    """Map position of a node (``x`` = longitude, ``y`` = latitude)."""

    x: float
    y: float

    @classmethod
    def from_raw(cls, raw: Any) -> Coordinates | None:
        """Build coordinates from a ``{X, Y}`` payload, or ``None`` if incomplete."""
        if not isinstance(raw, Mapping):
            return None
        x = parse_number(raw.get("X"))
        y = parse_number(raw.get("Y"))
        if x is None or y is None:
            return None
        return cls(x=x, y=y)


class Packet(SoilBaseModel):
    """One multi-parameter reading as stored under ``Packets/<key>``."""

    key: str
    readings: dict[str, Any] = Field(default_factory=dict)
    acknowledged: dict[SoilParameter, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, key: str, raw: Any) -> Packet:
        readings: dict[str, Any] = {}
        acknowledged: dict[SoilParameter, Any] = {}
        if isinstance(raw, Mapping):
            for field_name, value in raw.items():
                match = _ACK_KEY.match(str(field_name))
                if match is None:
                    readings[str(field_name)] = value
                    continue
                try:
                    acknowledged[SoilParameter(match.group("param"))] = value
                except ValueError:
                    # Marker for a parameter we do not display.
                    readings[str(field_name)] = value
        return cls(key=key, readings=readings, acknowledged=acknowledged)

    def value(self, parameter: SoilParameter) -> Any:
        """Raw reading for *parameter* (``None`` when absent)."""
        return self.readings.get(parameter.reading_key)

    def is_acknowledged(self, parameter: SoilParameter) -> bool:
        return parameter in self.acknowledged


class Node(SoilBaseModel):
    """A sensor node owned by a tenant."""

    tenant: str
    name: str
    coordinates: Coordinates | None = None
    packets: tuple[Packet, ...] = ()

    @property
    def marker_id(self) -> str:
        """Composite key, unique across tenants."""
        return f"{self.tenant}_{self.name}"

    @property
    def latest_packet(self) -> Packet | None:
        return self.packets[-1] if self.packets else None

    @classmethod
    def from_raw(cls, tenant: str, name: str, raw: Any) -> Node:
        """Parse a node payload.

        Raises
        ------
        SoilwatchDataShapeError
            If *raw* is not an object.
        """
        if not isinstance(raw, Mapping):
            raise SoilwatchDataShapeError(
                f"node payload is {type(raw).__name__}, expected an object",
                tenant=tenant,
                node=name,
            )
        return cls(
            tenant=tenant,
            name=name,
            coordinates=Coordinates.from_raw(raw.get("Coordinates")),
            packets=tuple(Packet.from_raw(key, value) for key, value in _iter_packets(raw.get("Packets"))),
        )


def _iter_packets(raw: Any) -> Iterator[tuple[str, Any]]:
    # The store turns integer-keyed children into arrays, with holes as null.
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            if value is not None:
                yield str(key), value
    elif isinstance(raw, list):
        for index, value in enumerate(raw):
            if value is not None:
                yield str(index), value


def iter_tenant_nodes(users: Any) -> Iterator[tuple[str, str, Any]]:
    """Yield ``(tenant, node_name, raw_node)`` for every node in a ``Users`` tree.

    Tenants without a ``Farm.Nodes`` object contribute nothing.
    """
    if not isinstance(users, Mapping):
        return
    for tenant, tenant_data in users.items():
        if not isinstance(tenant_data, Mapping):
            continue
        farm = tenant_data.get("Farm")
        nodes = farm.get("Nodes") if isinstance(farm, Mapping) else None
        if not isinstance(nodes, Mapping):
            continue
        for node_name, node_data in nodes.items():
            yield str(tenant), str(node_name), node_data


class TelemetrySnapshot(SoilBaseModel):
    """Full state of a store subtree at one point in time.

    This is the message carried from a store subscription to its consumer.
    ``value`` is a private deep copy; consumers must treat it as read-only.
    """

    path: str
    value: Any = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("value", mode="before")
    @classmethod
    def _detach(cls, value: Any) -> Any:
        return copy.deepcopy(value)

    @property
    def exists(self) -> bool:
        """Whether the subtree holds anything (the store's existence check)."""
        return bool(self.value)
