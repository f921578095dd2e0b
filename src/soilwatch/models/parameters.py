"""Sensor parameters and their normal ranges."""

from __future__ import annotations

from enum import StrEnum

from pydantic import model_validator

from soilwatch._constants import RANGES
from soilwatch.models._base import SoilBaseModel


class SoilParameter(StrEnum):
    """Measured soil parameters, in display order."""

    TEMPERATURE = "Temperature"
    MOISTURE = "Moisture"
    PH = "pH"
    SALINITY = "Salinity"
    EC = "EC"
    NITROGEN = "Nitrogen"
    PHOSPHORUS = "Phosphorus"
    POTASSIUM = "Potassium"

    @property
    def reading_key(self) -> str:
        """Key of this parameter's reading inside a packet."""
        return self.value.lower()

    @property
    def ack_key(self) -> str:
        """Key of the acknowledgment marker inside a packet."""
        return f"Disabled_{self.value}_done"


class ParameterRange(SoilBaseModel):
    """Closed normal interval ``[minimum, maximum]`` for one parameter."""

    minimum: float
    maximum: float

    @model_validator(mode="after")
    def _check_order(self) -> ParameterRange:
        if self.minimum >= self.maximum:
            raise ValueError(f"minimum ({self.minimum}) must be below maximum ({self.maximum})")
        return self

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


DEFAULT_RANGES: dict[SoilParameter, ParameterRange] = {
    SoilParameter(name): ParameterRange(minimum=low, maximum=high) for name, (low, high) in RANGES.items()
}
