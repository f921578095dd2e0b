"""Range evaluation for sensor readings.

Two independent domains are involved per parameter:

* the *display* domain, used only to scale the bar (pH on 3-9,
  temperature on -30-70 °C, moisture already a percentage, nutrients and
  conductivity on a log scale between 0.01 and 20);
* the *normal range*, used to decide whether the reading is acceptable.

Raw nutrient readings routinely exceed the display domain, so the
scaled percent is always clamped before it leaves this module.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from soilwatch.models._base import parse_number
from soilwatch.models.parameters import DEFAULT_RANGES, ParameterRange, SoilParameter

_LOG_FLOOR = 0.01
_LOG_CEILING = 20.0
_PH_DOMAIN = (3.0, 9.0)
_TEMPERATURE_DOMAIN = (-30.0, 70.0)


class Direction(StrEnum):
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class RangeEvaluation:
    """Result of evaluating one reading.

    Parameters
    ----------
    value : float
        Parsed reading (``0.0`` when missing or unparseable).
    percent : float
        Display fill, clamped to ``[0, 100]``.
    in_range : bool
        Whether ``value`` lies within the parameter's normal range.
    direction : Direction or None
        ``LOW``/``HIGH`` when out of range, ``None`` otherwise.
    """

    value: float
    percent: float
    in_range: bool
    direction: Direction | None


def parse_reading(raw_value: Any) -> float:
    """Parse a raw reading; anything non-numeric reads as ``0``."""
    parsed = parse_number(raw_value)
    return 0.0 if parsed is None else parsed


def _linear(value: float, low: float, high: float) -> float:
    return (value - low) / (high - low) * 100


def _logarithmic(value: float) -> float:
    floor = math.log10(_LOG_FLOOR)
    return (math.log10(max(value, _LOG_FLOOR)) - floor) / (math.log10(_LOG_CEILING) - floor) * 100


def display_percent(parameter: SoilParameter, value: float) -> float:
    """Scale *value* onto the parameter's display domain, clamped to ``[0, 100]``."""
    if parameter == SoilParameter.PH:
        percent = _linear(value, *_PH_DOMAIN)
    elif parameter == SoilParameter.MOISTURE:
        percent = value
    elif parameter == SoilParameter.TEMPERATURE:
        percent = _linear(value, *_TEMPERATURE_DOMAIN)
    else:
        percent = _logarithmic(value)
    return min(max(percent, 0.0), 100.0)


class RangeEvaluator:
    """Evaluates readings against a table of normal ranges."""

    def __init__(self, ranges: Mapping[SoilParameter, ParameterRange] | None = None) -> None:
        self._ranges: dict[SoilParameter, ParameterRange] = dict(DEFAULT_RANGES)
        if ranges is not None:
            self._ranges.update(ranges)

    def range_for(self, parameter: SoilParameter) -> ParameterRange:
        return self._ranges[parameter]

    def evaluate(self, parameter: SoilParameter | str, raw_value: Any) -> RangeEvaluation:
        parameter = SoilParameter(parameter)
        value = parse_reading(raw_value)
        normal = self._ranges[parameter]

        direction: Direction | None = None
        if not normal.contains(value):
            direction = Direction.LOW if value < normal.minimum else Direction.HIGH

        return RangeEvaluation(
            value=value,
            percent=display_percent(parameter, value),
            in_range=direction is None,
            direction=direction,
        )


_DEFAULT_EVALUATOR = RangeEvaluator()


def evaluate(parameter: SoilParameter | str, raw_value: Any) -> RangeEvaluation:
    """Evaluate *raw_value* against the default range table."""
    return _DEFAULT_EVALUATOR.evaluate(parameter, raw_value)
