"""Periodic feed poller.

The poller owns the refresh loop::

    IDLE -> FETCHING -> (success | failure) -> WAITING -> FETCHING -> ...

until :meth:`FeedPoller.stop` moves it to ``STOPPED``.  Ticks are anchored
to trigger times, so a cycle that starts at ``t`` schedules the next one at
``t + interval`` regardless of how long the fetch took.  A tick that comes
due while a fetch is still outstanding is skipped.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

from pybusmap._constants import FEED_PATH, POLL_INTERVAL_S
from pybusmap._transport import Transport
from pybusmap.exceptions import BusMapError
from pybusmap.ingestion.feed import parse_feed_payload
from pybusmap.models.vehicle import FeedSnapshot
from pybusmap.state.store import LiveMapState

_logger = logging.getLogger(__name__)


class PollerPhase(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    WAITING = "waiting"
    STOPPED = "stopped"


class FeedPoller:
    """Fetch the feed on a fixed schedule and publish snapshots to a :class:`LiveMapState`.

    Usage::

        async with FeedPoller(transport, state):
            ...

    Parameters
    ----------
    transport
        Anything implementing :class:`pybusmap._transport.Transport`.
    state
        Store that receives snapshots and failure messages.
    endpoint
        Feed path passed to the transport.
    interval
        Seconds between cycle triggers.
    clock, sleep
        Monotonic clock and sleep coroutine; injectable for tests.  The
        clock defaults to the running loop's time.
    """

    def __init__(
        self,
        transport: Transport,
        state: LiveMapState,
        *,
        endpoint: str = FEED_PATH,
        interval: float = POLL_INTERVAL_S,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not (interval > 0 and math.isfinite(interval)):
            raise ValueError(f"interval must be a positive number, got {interval}")
        self._transport = transport
        self._state = state
        self._endpoint = endpoint
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._stopped = False
        self._phase = PollerPhase.IDLE
        self._cycle_count = 0
        self._last_error: BaseException | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FeedPoller:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.stop()
        await self.wait_closed()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def phase(self) -> PollerPhase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def cycle_count(self) -> int:
        """Number of fetch cycles started since construction."""
        return self._cycle_count

    @property
    def last_error(self) -> BaseException | None:
        """Exception of the most recent failed cycle, if the last cycle failed."""
        return self._last_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run one cycle immediately, then one every ``interval`` seconds.

        Must be called from within a running event loop.  Calling it while
        already running is a no-op.
        """
        if self.is_running and self._phase is not PollerPhase.STOPPED:
            return
        loop = asyncio.get_running_loop()
        self._stopped = False
        self._generation += 1
        self._task = loop.create_task(self._run(self._generation), name="pybusmap-feed-poller")
        _logger.info("Feed poller started endpoint=%s interval=%.1fs", self._endpoint, self._interval)

    def stop(self) -> None:
        """Cancel the pending cycle and discard any fetch still outstanding.

        After this returns no cycle started before the call will write to
        the state store.  Use :meth:`wait_closed` to join the task.
        """
        self._stopped = True
        self._generation += 1
        self._phase = PollerPhase.STOPPED
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            _logger.info("Feed poller stopped")

    async def wait_closed(self) -> None:
        """Wait until the polling task has finished after :meth:`stop`."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        await asyncio.wait({task})
        if self._task is task:
            self._task = None

    async def refresh(self) -> bool:
        """Run a single fetch cycle now.

        Queues behind a cycle already in flight.  Returns ``True`` if a new
        snapshot was published.  A stopped poller does not fetch until
        :meth:`start` is called again.
        """
        if self._stopped:
            _logger.debug("Ignoring refresh on stopped feed poller")
            return False
        return await self._cycle(self._generation)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _run(self, generation: int) -> None:
        next_trigger = self._now()
        while self._is_current(generation):
            trigger = next_trigger
            await self._cycle(generation)
            if not self._is_current(generation):
                break

            next_trigger = trigger + self._interval
            now = self._now()
            if now > next_trigger:
                missed = int((now - next_trigger) // self._interval) + 1
                next_trigger += missed * self._interval
                _logger.debug("Feed fetch overran the interval, skipping %d tick(s)", missed)

            await self._sleep(next_trigger - now)

    async def _cycle(self, generation: int) -> bool:
        async with self._lock:
            if self._stopped or not self._is_current(generation):
                return False

            self._phase = PollerPhase.FETCHING
            self._cycle_count += 1
            try:
                body = await self._transport.get_json(self._endpoint)
                vehicles = parse_feed_payload(body)
            except BusMapError as exc:
                return self._fail(generation, exc)
            except Exception as exc:
                _logger.exception("Unexpected error while polling %s", self._endpoint)
                return self._fail(generation, exc)
            finally:
                if self._is_current(generation) and not self._stopped:
                    self._phase = PollerPhase.WAITING if self.is_running else PollerPhase.IDLE

            if not self._is_current(generation):
                _logger.debug("Discarding feed result that completed after stop")
                return False

            self._last_error = None
            self._state.replace_snapshot(FeedSnapshot(vehicles=tuple(vehicles)))
            _logger.debug("Feed snapshot updated with %d vehicles", len(vehicles))
            return True

    def _fail(self, generation: int, exc: Exception) -> bool:
        if not self._is_current(generation):
            _logger.debug("Discarding feed failure that completed after stop: %s", exc)
            return False
        _logger.warning("Feed poll failed: %s", exc)
        self._last_error = exc
        self._state.record_failure(str(exc) or type(exc).__name__)
        return False
