from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pybusmap.exceptions import BusMapTransportError
from pybusmap.poller import FeedPoller, PollerPhase
from pybusmap.state.store import LiveMapState


def _body(*vehicles: tuple[str, str]) -> dict[str, Any]:
    return {
        "entity": [
            {
                "id": vid,
                "vehicle": {"position": {"latitude": -33.87, "longitude": 151.21}, "trip": {"routeId": route}},
            }
            for vid, route in vehicles
        ]
    }


def _ids(state: LiveMapState) -> list[str]:
    assert state.snapshot is not None
    return [v.id for v in state.snapshot.vehicles]


@dataclass
class FakeClock:
    now: float = 0.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@dataclass
class ScriptedTransport:
    """Replays one scripted step per call, then blocks until cancelled.

    A step is a body, an exception to raise, or a callable producing either.
    """

    clock: FakeClock
    steps: list[Any]
    calls: list[float] = field(default_factory=list)
    exhausted: asyncio.Event = field(default_factory=asyncio.Event)

    async def get_json(self, endpoint: str) -> Any:
        assert endpoint == "/api/buses"
        self.calls.append(self.clock.now)
        if not self.steps:
            self.exhausted.set()
            await asyncio.Event().wait()
        step = self.steps.pop(0)
        if callable(step):
            step = step()
        if isinstance(step, BaseException):
            raise step
        return step


async def _run_until_exhausted(poller: FeedPoller, transport: ScriptedTransport) -> None:
    poller.start()
    await asyncio.wait_for(transport.exhausted.wait(), timeout=2.0)
    poller.stop()
    await poller.wait_closed()


@pytest.mark.asyncio
async def test_failure_keeps_snapshot_and_schedule() -> None:
    clock = FakeClock()
    state = LiveMapState()
    transport = ScriptedTransport(
        clock,
        [
            _body(("1", "M20")),
            BusMapTransportError("HTTP error! status: 503", status_code=503, endpoint="/api/buses"),
        ],
    )
    poller = FeedPoller(transport, state, clock=clock, sleep=clock.sleep)

    await _run_until_exhausted(poller, transport)

    assert transport.calls == [0.0, 10.0, 20.0]
    assert _ids(state) == ["1"]
    assert state.error == "HTTP error! status: 503"
    assert isinstance(poller.last_error, BusMapTransportError)
    assert poller.phase is PollerPhase.STOPPED


@pytest.mark.asyncio
async def test_schedule_is_anchored_to_trigger_time() -> None:
    clock = FakeClock()
    state = LiveMapState()

    def _slow_success() -> dict[str, Any]:
        clock.now += 3.0
        return _body(("1", "M20"))

    transport = ScriptedTransport(clock, [_slow_success, _slow_success])
    poller = FeedPoller(transport, state, clock=clock, sleep=clock.sleep)

    await _run_until_exhausted(poller, transport)

    assert transport.calls == [0.0, 10.0, 20.0]
    assert clock.sleeps == [7.0, 7.0]


@pytest.mark.asyncio
async def test_tick_due_during_outstanding_fetch_is_skipped() -> None:
    clock = FakeClock()
    state = LiveMapState()

    def _very_slow_success() -> dict[str, Any]:
        clock.now += 12.0
        return _body(("1", "M20"))

    transport = ScriptedTransport(clock, [_very_slow_success])
    poller = FeedPoller(transport, state, clock=clock, sleep=clock.sleep)

    await _run_until_exhausted(poller, transport)

    assert transport.calls == [0.0, 20.0]


@pytest.mark.asyncio
async def test_success_replaces_snapshot_without_merging() -> None:
    clock = FakeClock()
    state = LiveMapState()
    transport = ScriptedTransport(clock, [_body(("1", "A"), ("2", "B")), _body(("3", "C"))])
    poller = FeedPoller(transport, state, clock=clock, sleep=clock.sleep)

    await _run_until_exhausted(poller, transport)

    assert _ids(state) == ["3"]
    assert poller.cycle_count == 3


@pytest.mark.asyncio
async def test_stop_discards_outstanding_fetch() -> None:
    state = LiveMapState()
    started = asyncio.Event()
    release = asyncio.Event()

    class BlockingTransport:
        async def get_json(self, endpoint: str) -> Any:
            started.set()
            await release.wait()
            return _body(("1", "M20"))

    poller = FeedPoller(BlockingTransport(), state)
    poller.start()
    await asyncio.wait_for(started.wait(), timeout=1.0)

    poller.stop()
    release.set()
    await poller.wait_closed()
    await asyncio.sleep(0)

    assert state.snapshot is None
    assert state.error is None
    assert not poller.is_running


@pytest.mark.asyncio
async def test_stop_discards_fetch_that_ignores_cancellation() -> None:
    state = LiveMapState()
    started = asyncio.Event()
    calls: list[int] = []

    class StubbornTransport:
        """Completes its request even when the awaiting task is cancelled."""

        async def get_json(self, endpoint: str) -> Any:
            calls.append(1)
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                pass
            return _body(("1", "M20"))

    poller = FeedPoller(StubbornTransport(), state)
    poller.start()
    await asyncio.wait_for(started.wait(), timeout=1.0)

    poller.stop()
    await asyncio.wait_for(poller.wait_closed(), timeout=1.0)

    assert state.snapshot is None
    assert calls == [1]


@pytest.mark.asyncio
async def test_failure_after_stop_is_not_recorded() -> None:
    state = LiveMapState()
    started = asyncio.Event()

    class FailingLateTransport:
        async def get_json(self, endpoint: str) -> Any:
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                pass
            raise BusMapTransportError("HTTP error! status: 500", status_code=500)

    poller = FeedPoller(FailingLateTransport(), state)
    poller.start()
    await asyncio.wait_for(started.wait(), timeout=1.0)
    poller.stop()
    await asyncio.wait_for(poller.wait_closed(), timeout=1.0)

    assert state.error is None


@pytest.mark.asyncio
async def test_refresh_never_overlaps_fetches() -> None:
    state = LiveMapState()
    gate = asyncio.Event()

    class CountingTransport:
        in_flight = 0
        max_in_flight = 0

        async def get_json(self, endpoint: str) -> Any:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await gate.wait()
                return _body(("1", "M20"))
            finally:
                self.in_flight -= 1

    transport = CountingTransport()
    poller = FeedPoller(transport, state)

    first = asyncio.create_task(poller.refresh())
    second = asyncio.create_task(poller.refresh())
    await asyncio.sleep(0)
    gate.set()

    assert await asyncio.gather(first, second) == [True, True]
    assert transport.max_in_flight == 1
    assert poller.cycle_count == 2
    assert poller.phase is PollerPhase.IDLE


@pytest.mark.asyncio
async def test_parse_and_unexpected_errors_become_messages() -> None:
    state = LiveMapState()

    def _explode() -> Any:
        raise RuntimeError("socket exploded")

    responses: list[Callable[[], Any]] = [
        lambda: {"entity": "not-a-list"},
        _explode,
        lambda: _body(("9", "X")),
    ]

    class Transport:
        async def get_json(self, endpoint: str) -> Any:
            return responses.pop(0)()

    poller = FeedPoller(Transport(), state)

    assert await poller.refresh() is False
    assert state.error is not None and "must be a list" in state.error

    assert await poller.refresh() is False
    assert state.error == "socket exploded"

    assert await poller.refresh() is True
    assert state.error is None
    assert _ids(state) == ["9"]
    assert poller.last_error is None


@pytest.mark.asyncio
async def test_context_manager_starts_and_stops() -> None:
    state = LiveMapState()
    fetched = asyncio.Event()

    class Transport:
        async def get_json(self, endpoint: str) -> Any:
            fetched.set()
            return _body(("1", "M20"))

    async with FeedPoller(Transport(), state) as poller:
        await asyncio.wait_for(fetched.wait(), timeout=1.0)
        assert poller.is_running

    assert not poller.is_running
    assert _ids(state) == ["1"]


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        FeedPoller(object(), LiveMapState(), interval=0)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_refresh_after_stop_does_not_fetch() -> None:
    state = LiveMapState()
    calls: list[str] = []

    class Transport:
        async def get_json(self, endpoint: str) -> Any:
            calls.append(endpoint)
            return _body((str(len(calls)), "M20"))

    poller = FeedPoller(Transport(), state)
    assert await poller.refresh() is True
    before = state.snapshot

    poller.stop()
    await poller.wait_closed()

    assert await poller.refresh() is False
    assert state.snapshot is before
    assert calls == ["/api/buses"]
    assert poller.phase is PollerPhase.STOPPED


@pytest.mark.asyncio
async def test_restart_after_stop_polls_again() -> None:
    state = LiveMapState()
    fetched = asyncio.Event()
    bodies = [_body(("1", "A")), _body(("2", "B"))]

    class Transport:
        async def get_json(self, endpoint: str) -> Any:
            fetched.set()
            return bodies.pop(0)

    poller = FeedPoller(Transport(), state)
    poller.start()
    await asyncio.wait_for(fetched.wait(), timeout=1.0)
    poller.stop()
    await poller.wait_closed()
    assert _ids(state) == ["1"]

    fetched.clear()
    poller.start()
    await asyncio.wait_for(fetched.wait(), timeout=1.0)
    await asyncio.sleep(0)
    poller.stop()
    await poller.wait_closed()

    assert _ids(state) == ["2"]
    assert await poller.refresh() is False
