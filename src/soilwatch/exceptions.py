"""Custom exception hierarchy for soilwatch."""

from __future__ import annotations


class SoilwatchError(Exception):
    """Base exception for all soilwatch errors."""


class SoilwatchConfigError(SoilwatchError):
    """Invalid or missing configuration (e.g. no operator identity)."""


class SoilwatchAccessDeniedError(SoilwatchConfigError):
    """The operator identity does not exist under ``Admin/`` in the store.

    Raised during controller startup.  Initialization is aborted and no
    snapshot is ever reconciled.
    """


class SoilwatchTransportError(SoilwatchError):
    """HTTP-level failure talking to the telemetry store."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


class SoilwatchWriteError(SoilwatchTransportError):
    """A write to the store was rejected or did not complete."""


class SoilwatchAdvisoryError(SoilwatchError):
    """Invalid advisory transition.

    Raised when acknowledging a parameter whose advisory is not the one
    currently open, or while another acknowledgment write is in flight.
    """


class SoilwatchDataShapeError(SoilwatchError):
    """A node payload in a snapshot could not be interpreted.

    Recoverable: the reconciler skips the affected node and continues.
    """

    def __init__(self, message: str, *, tenant: str = "", node: str = "") -> None:
        self.tenant = tenant
        self.node = node
        super().__init__(message)
