"""Vehicle observation and feed snapshot models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import Field

from pybusmap.models._base import BusMapModel


class VehicleObservation(BusMapModel):
    """A single vehicle position taken from one feed poll.

    Parameters
    ----------
    id : str
        Feed entity id, expected unique within a snapshot.
    latitude : float
        Latitude in degrees, ``[-90, 90]``.
    longitude : float
        Longitude in degrees, ``[-180, 180]``.
    route_id : str
        Route the vehicle's current trip belongs to.
    """

    id: str = Field(min_length=1)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    route_id: str = Field(min_length=1)


class FeedSnapshot(BusMapModel):
    """Ordered result of the most recent successful poll.

    Replaced wholesale on every successful poll; never merged.
    """

    vehicles: tuple[VehicleObservation, ...] = ()
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self.vehicles)
