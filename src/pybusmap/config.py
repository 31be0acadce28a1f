"""Client configuration for pybusmap."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any

from pybusmap._constants import (
    FALLBACK_LATITUDE,
    FALLBACK_LONGITUDE,
    FEED_PATH,
    GEOLOCATION_URL,
    LOCATION_TIMEOUT_S,
    NEARBY_THRESHOLD_KM,
    POLL_INTERVAL_S,
)
from pybusmap.exceptions import BusMapConfigError


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise BusMapConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class LiveMapConfig:
    """Live map configuration.

    Parameters
    ----------
    base_url : str
        Base URL of the backend that serves the feed endpoint.
    feed_path : str
        Path of the vehicle-position feed, appended to ``base_url``.
    poll_interval : float
        Seconds between two feed polls.  Fixed; no jitter, no backoff.
    nearby_threshold_km : float
        Vehicles at or within this distance of the viewer are flagged nearby.
    fallback_latitude : float
        Latitude used when the viewer position cannot be resolved.
    fallback_longitude : float
        Longitude used when the viewer position cannot be resolved.
    location_timeout : float
        Seconds to wait for the geolocation collaborator before falling back.
    request_timeout : float or None
        Total timeout applied to each feed request.  ``None`` leaves the
        transport default in place.
    geolocation_url : str
        JSON endpoint queried by :class:`pybusmap.location.IpGeolocator`.
    """

    base_url: str = "http://localhost:5000"
    feed_path: str = FEED_PATH
    poll_interval: float = POLL_INTERVAL_S
    nearby_threshold_km: float = NEARBY_THRESHOLD_KM
    fallback_latitude: float = FALLBACK_LATITUDE
    fallback_longitude: float = FALLBACK_LONGITUDE
    location_timeout: float = LOCATION_TIMEOUT_S
    request_timeout: float | None = None
    geolocation_url: str = GEOLOCATION_URL

    def __post_init__(self) -> None:
        if not (self.poll_interval > 0 and math.isfinite(self.poll_interval)):
            raise BusMapConfigError(f"poll_interval must be a positive number, got {self.poll_interval}")
        if self.nearby_threshold_km < 0:
            raise BusMapConfigError(f"nearby_threshold_km must not be negative, got {self.nearby_threshold_km}")
        if not -90.0 <= self.fallback_latitude <= 90.0:
            raise BusMapConfigError(f"fallback_latitude out of range: {self.fallback_latitude}")
        if not -180.0 <= self.fallback_longitude <= 180.0:
            raise BusMapConfigError(f"fallback_longitude out of range: {self.fallback_longitude}")
        if self.location_timeout <= 0:
            raise BusMapConfigError(f"location_timeout must be positive, got {self.location_timeout}")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise BusMapConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if not self.feed_path.startswith("/"):
            raise BusMapConfigError(f"feed_path must start with '/', got {self.feed_path!r}")

    @property
    def feed_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.feed_path}"

    @classmethod
    def from_env(cls, **overrides: Any) -> LiveMapConfig:
        """Create configuration from ``BUSMAP_*`` environment variables.

        Explicit keyword arguments override environment values.

        Returns
        -------
        LiveMapConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "BUSMAP_BASE_URL": "base_url",
            "BUSMAP_FEED_PATH": "feed_path",
            "BUSMAP_GEOLOCATION_URL": "geolocation_url",
        }
        _ENV_FLOAT_MAP = {
            "BUSMAP_POLL_INTERVAL": "poll_interval",
            "BUSMAP_NEARBY_THRESHOLD_KM": "nearby_threshold_km",
            "BUSMAP_FALLBACK_LATITUDE": "fallback_latitude",
            "BUSMAP_FALLBACK_LONGITUDE": "fallback_longitude",
            "BUSMAP_LOCATION_TIMEOUT": "location_timeout",
            "BUSMAP_REQUEST_TIMEOUT": "request_timeout",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
