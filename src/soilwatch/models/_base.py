"""Base model and lenient number parsing for store payloads.

Telemetry values arrive from field devices as numbers, numeric strings,
strings with trailing units (``"6.2pH"``) or not at all.  Readings are
parsed leniently: the longest leading numeric prefix wins, the same way a
browser's ``parseFloat`` would read them.
"""

from __future__ import annotations

import math
import re
from typing import Any

from pydantic import BaseModel, ConfigDict

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:inf(?:inity)?|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))", re.IGNORECASE)


def parse_number(value: Any) -> float | None:
    """Parse *value* as a float, returning ``None`` when it is not numeric.

    Booleans are not numbers here, and NaN is treated as missing.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return None
        result = float(match.group(1))
    else:
        return None
    if math.isnan(result):
        return None
    return result


class SoilBaseModel(BaseModel):
    """Base for immutable soilwatch models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
