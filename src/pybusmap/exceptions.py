"""Custom exception hierarchy for pybusmap."""

from __future__ import annotations


class BusMapError(Exception):
    """Base exception for all pybusmap errors."""


class BusMapConfigError(BusMapError):
    """Invalid configuration value."""


class BusMapTransportError(BusMapError):
    """HTTP-level failure (network error or non-2xx status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FeedParseError(BusMapError):
    """Feed body could not be interpreted at the top level.

    Individual malformed entities never raise; they are dropped by the
    parser.  This is reserved for bodies that are not JSON, not an object,
    or whose ``entity`` member is not a list.
    """


class LocationError(BusMapError):
    """Viewer geolocation denied, unavailable or timed out.

    Always absorbed by :class:`pybusmap.location.LocationProvider`, which
    falls back to the configured default position.
    """
