"""Client configuration for soilwatch."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from soilwatch._constants import DEFAULT_DATABASE_URL
from soilwatch.exceptions import SoilwatchConfigError


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise SoilwatchConfigError(f"{key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SoilwatchConfig:
    """Dashboard engine configuration.

    Parameters
    ----------
    admin : str
        Operator identity.  Must exist under ``Admin/<admin>`` in the
        store; validated by the controller at startup.
    database_url : str
        Root URL of the Firebase Realtime Database.
    auth_token : str or None
        Database secret or ID token sent as the ``auth`` query parameter.
    suppress_cooldown : float
        Seconds snapshots stay suppressed after a successful
        acknowledgment write settles.  A heuristic against the write's
        own echo; tune freely.
    identity_timeout : float
        Seconds to wait for the ``Admin/<admin>`` lookup before giving up.
    request_timeout : float
        Total timeout in seconds for a single store write.
    reconnect_delay : float
        Seconds to wait before reopening a dropped stream.
    """

    admin: str
    database_url: str = DEFAULT_DATABASE_URL
    auth_token: str | None = None
    suppress_cooldown: float = 2.0
    identity_timeout: float = 10.0
    request_timeout: float = 15.0
    reconnect_delay: float = 5.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "admin", (self.admin or "").strip())
        object.__setattr__(self, "database_url", self.database_url.rstrip("/"))
        if self.suppress_cooldown < 0:
            raise SoilwatchConfigError("suppress_cooldown must be >= 0")

    @classmethod
    def from_env(cls, **overrides: Any) -> SoilwatchConfig:
        """Create configuration from ``SOILWATCH_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        SoilwatchConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "SOILWATCH_ADMIN": "admin",
            "SOILWATCH_DATABASE_URL": "database_url",
            "SOILWATCH_AUTH_TOKEN": "auth_token",
        }
        config_kwargs: dict[str, Any] = {"admin": ""}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "SOILWATCH_SUPPRESS_COOLDOWN": "suppress_cooldown",
            "SOILWATCH_IDENTITY_TIMEOUT": "identity_timeout",
            "SOILWATCH_REQUEST_TIMEOUT": "request_timeout",
            "SOILWATCH_RECONNECT_DELAY": "reconnect_delay",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_float(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
