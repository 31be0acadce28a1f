"""Viewer position resolution.

The viewer's position is resolved once per session: the geolocation
collaborator is asked a single time and, if it fails or takes too long,
the configured fallback is used instead.  The first committed position wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pybusmap._constants import GEOLOCATION_URL, LOCATION_TIMEOUT_S, USER_AGENT
from pybusmap.exceptions import LocationError
from pybusmap.ingestion.normalize import safe_float
from pybusmap.models.position import ViewerPosition

_logger = logging.getLogger(__name__)


class Geolocator(Protocol):
    """Single-shot "current position" capability."""

    async def current_position(self) -> ViewerPosition:
        """Return the device position or raise :class:`LocationError`."""
        ...


class StaticGeolocator:
    """Geolocator that always reports the same position."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._position = ViewerPosition(latitude=latitude, longitude=longitude)

    async def current_position(self) -> ViewerPosition:
        return self._position


def parse_geolocation_response(data: Any) -> ViewerPosition:
    """Extract a position from an IP geolocation JSON response.

    Accepts ``{"lat", "lon"}`` (ip-api.com) and ``{"latitude",
    "longitude"}`` (ipapi.co and similar) shapes.
    """
    if not isinstance(data, Mapping):
        raise LocationError("Geolocation response is not an object")
    if data.get("status") == "fail" or data.get("error"):
        reason = data.get("message") or data.get("reason") or "lookup failed"
        raise LocationError(f"Geolocation lookup failed: {reason}")

    latitude = safe_float(data.get("lat", data.get("latitude")))
    longitude = safe_float(data.get("lon", data.get("longitude")))
    if latitude is None or longitude is None:
        raise LocationError("Geolocation response has no coordinates")
    try:
        return ViewerPosition(latitude=latitude, longitude=longitude)
    except ValidationError as exc:
        raise LocationError(f"Geolocation coordinates out of range: {latitude}, {longitude}") from exc


class IpGeolocator:
    """Approximate the viewer position from the public IP address."""

    def __init__(self, http_session: aiohttp.ClientSession, url: str = GEOLOCATION_URL) -> None:
        self._http = http_session
        self._url = url

    async def current_position(self) -> ViewerPosition:
        _logger.debug("GET %s", self._url)
        try:
            async with self._http.get(self._url, headers={"user-agent": USER_AGENT}) as resp:
                if resp.status != 200:
                    raise LocationError(f"Geolocation HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise LocationError(f"Geolocation request failed: {exc}") from exc
        except ValueError as exc:
            raise LocationError("Geolocation response is not JSON") from exc
        return parse_geolocation_response(data)


class LocationProvider:
    """Resolve the viewer position at most once.

    Parameters
    ----------
    geolocator
        Collaborator asked for the live position.  ``None`` means no
        geolocation is available and the fallback is used directly.
    fallback
        Position used when the geolocator fails or times out.
    timeout
        Seconds to wait for the geolocator.
    on_resolved
        Called with the committed position, once.
    """

    def __init__(
        self,
        geolocator: Geolocator | None,
        *,
        fallback: ViewerPosition,
        timeout: float = LOCATION_TIMEOUT_S,
        on_resolved: Callable[[ViewerPosition], Any] | None = None,
    ) -> None:
        self._geolocator = geolocator
        self._fallback = fallback if fallback.is_fallback else fallback.model_copy(update={"is_fallback": True})
        self._timeout = timeout
        self._on_resolved = on_resolved
        self._task: asyncio.Task[ViewerPosition] | None = None
        self._position: ViewerPosition | None = None

    @property
    def fallback(self) -> ViewerPosition:
        return self._fallback

    @property
    def position(self) -> ViewerPosition | None:
        """Committed position, ``None`` until resolution completes."""
        return self._position

    async def resolve(self) -> ViewerPosition:
        """Return the viewer position, asking the geolocator on the first call only.

        Concurrent callers share the same resolution.
        """
        if self._position is not None:
            return self._position
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._resolve_once(), name="pybusmap-locate")
        return await asyncio.shield(self._task)

    def offer(self, position: ViewerPosition) -> bool:
        """Commit *position* unless a position was already committed.

        Returns ``True`` if *position* became the viewer position.
        """
        if self._position is not None:
            _logger.debug("Ignoring late viewer position %s", position.as_tuple())
            return False
        self._position = position
        if self._on_resolved is not None:
            self._on_resolved(position)
        return True

    def cancel(self) -> None:
        """Abandon a resolution still in progress.

        Without a committed position the next :meth:`resolve` asks the
        geolocator again.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._position is None:
            self._task = None

    async def _resolve_once(self) -> ViewerPosition:
        self.offer(await self._locate())
        assert self._position is not None  # noqa: S101
        return self._position

    async def _locate(self) -> ViewerPosition:
        if self._geolocator is None:
            _logger.info("No geolocator configured, using fallback position")
            return self._fallback
        try:
            async with asyncio.timeout(self._timeout):
                position = await self._geolocator.current_position()
        except LocationError as exc:
            _logger.info("Error getting location, using fallback: %s", exc)
            return self._fallback
        except TimeoutError:
            _logger.info("Geolocation timed out after %.1fs, using fallback", self._timeout)
            return self._fallback
        except Exception:
            _logger.exception("Geolocator failed unexpectedly, using fallback")
            return self._fallback
        _logger.debug("Viewer position resolved to %s", position.as_tuple())
        return position
