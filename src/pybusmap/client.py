"""High-level async controller for a live bus map session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from pybusmap._transport import HttpTransport, Transport
from pybusmap.config import LiveMapConfig
from pybusmap.exceptions import BusMapError
from pybusmap.location import Geolocator, LocationProvider
from pybusmap.models.annotated import AnnotatedVehicle
from pybusmap.models.position import ViewerPosition
from pybusmap.models.vehicle import FeedSnapshot
from pybusmap.poller import FeedPoller
from pybusmap.state.events import StateListener
from pybusmap.state.store import LiveMapState
from pybusmap.view import build_view_model

_logger = logging.getLogger(__name__)


class LiveMapClient:
    """Owns the feed poller, the viewer location and the shared map state.

    Usage::

        async with LiveMapClient(config) as client:
            await client.start()
            for vehicle in client.vehicles():
                ...

    Parameters
    ----------
    config
        Live map configuration.
    session
        Optional externally managed ``aiohttp.ClientSession``.  When omitted
        the client creates one and closes it on exit.
    transport
        Optional feed transport; defaults to :class:`HttpTransport` on the
        client's HTTP session.
    geolocator
        Optional geolocation collaborator.  Without one the viewer position is
        the configured fallback.
    """

    def __init__(
        self,
        config: LiveMapConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        geolocator: Geolocator | None = None,
    ) -> None:
        self._config = config or LiveMapConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._state = LiveMapState()
        self._poller: FeedPoller | None = None
        self._location = LocationProvider(
            geolocator,
            fallback=ViewerPosition(
                latitude=self._config.fallback_latitude,
                longitude=self._config.fallback_longitude,
                is_fallback=True,
            ),
            timeout=self._config.location_timeout,
            on_resolved=self._state.commit_viewer,
        )
        self._locate_task: asyncio.Task[ViewerPosition] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LiveMapClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        self._poller = FeedPoller(
            self._transport,
            self._state,
            endpoint=self._config.feed_path,
            interval=self._config.poll_interval,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._poller = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start polling the feed and resolving the viewer position.

        Neither waits for its first result; subscribe or read the accessors.
        """
        poller = self._require_poller()
        poller.start()
        _logger.debug("Live map session started feed=%s", self._config.feed_url)
        if self._locate_task is None:
            self._locate_task = asyncio.get_running_loop().create_task(
                self._location.resolve(),
                name="pybusmap-viewer",
            )

    async def stop(self) -> None:
        """Stop polling and wait for the poller task to finish.

        No snapshot write happens after this returns.
        """
        if self._poller is not None:
            self._poller.stop()
            await self._poller.wait_closed()
        if self._locate_task is not None and not self._locate_task.done():
            self._location.cancel()
            self._locate_task.cancel()
            await asyncio.wait({self._locate_task})
        self._locate_task = None

    async def refresh(self) -> bool:
        """Fetch the feed once now; see :meth:`FeedPoller.refresh`."""
        return await self._require_poller().refresh()

    async def resolve_viewer(self) -> ViewerPosition:
        """Resolve (once) and return the viewer position."""
        return await self._location.resolve()

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def config(self) -> LiveMapConfig:
        return self._config

    @property
    def state(self) -> LiveMapState:
        return self._state

    @property
    def snapshot(self) -> FeedSnapshot | None:
        return self._state.snapshot

    @property
    def error(self) -> str | None:
        """Message to show in the error banner, ``None`` when the last poll succeeded."""
        return self._state.error

    @property
    def viewer(self) -> ViewerPosition | None:
        return self._state.viewer

    @property
    def map_center(self) -> ViewerPosition:
        """Where the map should be centered: the viewer, or the fallback until it is known."""
        return self._state.viewer or self._location.fallback

    def vehicles(self) -> list[AnnotatedVehicle]:
        """Annotated vehicles of the current snapshot, recomputed on every call."""
        return build_view_model(
            self._state.snapshot,
            self._state.viewer,
            nearby_threshold_km=self._config.nearby_threshold_km,
        )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""
        return self._state.subscribe(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_poller(self) -> FeedPoller:
        if self._poller is None:
            raise BusMapError("Client not initialized. Use 'async with LiveMapClient(...) as client:'")
        return self._poller
