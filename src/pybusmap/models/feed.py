"""Raw feed entity models.

These mirror the JSON rendering of a GTFS-realtime ``FeedMessage`` as
served by ``/api/buses``.  Every field is optional and loosely coerced:
the models describe what an entity *might* carry, and
:meth:`FeedEntity.to_observation` decides whether it is usable.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError, field_validator

from pybusmap.ingestion.normalize import safe_float, safe_mapping, safe_str
from pybusmap.models._base import BusMapModel
from pybusmap.models.vehicle import VehicleObservation


class FeedPosition(BusMapModel):
    latitude: float | None = None
    longitude: float | None = None
    bearing: float | None = None
    speed: float | None = None

    @field_validator("latitude", "longitude", "bearing", "speed", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)


class TripDescriptor(BusMapModel):
    trip_id: str | None = None
    route_id: str | None = None

    @field_validator("trip_id", "route_id", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)


class VehicleDescriptor(BusMapModel):
    id: str | None = None
    label: str | None = None

    @field_validator("id", "label", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)


class VehiclePayload(BusMapModel):
    """The ``vehicle`` member of a feed entity (a ``VehiclePosition``)."""

    position: FeedPosition | None = None
    trip: TripDescriptor | None = None
    vehicle: VehicleDescriptor | None = None

    @field_validator("position", "trip", "vehicle", mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> dict[str, Any] | None:
        return safe_mapping(value)


class FeedEntity(BusMapModel):
    id: str | None = None
    vehicle: VehiclePayload | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("vehicle", mode="before")
    @classmethod
    def _only_object(cls, value: Any) -> dict[str, Any] | None:
        return safe_mapping(value)

    @property
    def entity_id(self) -> str | None:
        """Entity id, falling back to the vehicle descriptor id."""
        if self.id is not None:
            return self.id
        if self.vehicle is not None and self.vehicle.vehicle is not None:
            return self.vehicle.vehicle.id
        return None

    def to_observation(self) -> VehicleObservation | None:
        """Return the observation this entity describes, or ``None`` if incomplete.

        Incomplete means: no id, no vehicle position (both coordinates), no
        trip route id, or coordinates outside the valid degree ranges.
        """
        vehicle = self.vehicle
        if vehicle is None or vehicle.position is None or vehicle.trip is None:
            return None
        position = vehicle.position
        if position.latitude is None or position.longitude is None:
            return None
        route_id = vehicle.trip.route_id
        entity_id = self.entity_id
        if route_id is None or entity_id is None:
            return None
        try:
            return VehicleObservation(
                id=entity_id,
                latitude=position.latitude,
                longitude=position.longitude,
                route_id=route_id,
            )
        except ValidationError:
            return None
