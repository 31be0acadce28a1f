"""State change notifications delivered to subscribers."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum


class StateChange(StrEnum):
    SNAPSHOT = "snapshot"
    ERROR = "error"
    VIEWER = "viewer"


StateListener = Callable[[StateChange], None]
