"""Live map state store.

Holds the three pieces of shared state the display layer reads: the feed
snapshot, the last poll error and the viewer position.  Each has exactly one
kind of writer:

- ``replace_snapshot`` / ``record_failure``: the feed poller's cycle
- ``commit_viewer``: the location provider, first write wins
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pybusmap.models.position import ViewerPosition
from pybusmap.models.vehicle import FeedSnapshot
from pybusmap.state.events import StateChange, StateListener

_logger = logging.getLogger(__name__)


class LiveMapState:
    """In-memory owner of the live map state.

    Snapshots are immutable and swapped by a single attribute assignment, so
    a reader never observes a partially updated snapshot.
    """

    def __init__(self) -> None:
        self._snapshot: FeedSnapshot | None = None
        self._error: str | None = None
        self._viewer: ViewerPosition | None = None
        self._listeners: list[StateListener] = []

    @property
    def snapshot(self) -> FeedSnapshot | None:
        """Most recent successful snapshot, ``None`` before the first success."""
        return self._snapshot

    @property
    def error(self) -> str | None:
        """Message of the last failed poll, cleared by the next success."""
        return self._error

    @property
    def viewer(self) -> ViewerPosition | None:
        return self._viewer

    def replace_snapshot(self, snapshot: FeedSnapshot) -> None:
        """Install *snapshot* as the current one and clear any poll error."""
        self._snapshot = snapshot
        self._notify(StateChange.SNAPSHOT)
        if self._error is not None:
            self._error = None
            self._notify(StateChange.ERROR)

    def record_failure(self, message: str) -> None:
        """Record a failed poll.  The current snapshot is kept."""
        self._error = message
        self._notify(StateChange.ERROR)

    def commit_viewer(self, position: ViewerPosition) -> bool:
        """Set the viewer position unless one was already committed.

        Returns ``True`` if *position* was stored.
        """
        if self._viewer is not None:
            _logger.debug("Ignoring viewer position %s, already set", position.as_tuple())
            return False
        self._viewer = position
        self._notify(StateChange.VIEWER)
        return True

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register *listener* for state changes and return an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.exception("State listener failed for %s", change)
