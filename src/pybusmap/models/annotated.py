"""Render-ready vehicle projection."""

from __future__ import annotations

import math

from pydantic import Field

from pybusmap.models._base import BusMapModel


class AnnotatedVehicle(BusMapModel):
    """A :class:`~pybusmap.models.vehicle.VehicleObservation` with derived display data.

    ``distance_km`` is ``math.inf`` when no viewer position is known yet,
    which also keeps ``is_nearby`` false.
    """

    id: str
    latitude: float
    longitude: float
    route_id: str
    distance_km: float = Field(ge=0.0)
    color: str
    is_nearby: bool

    @property
    def has_distance(self) -> bool:
        return math.isfinite(self.distance_km)

    @property
    def distance_label(self) -> str:
        """Distance as shown in a marker popup, e.g. ``"0.15 km"``."""
        if not self.has_distance:
            return "unknown"
        return f"{self.distance_km:.2f} km"
