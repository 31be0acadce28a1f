"""Render-ready view model.

Combines a feed snapshot with the viewer position into the list of
:class:`AnnotatedVehicle` entries a map display draws.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from pybusmap._constants import NEARBY_THRESHOLD_KM
from pybusmap.colors import color_for_route
from pybusmap.geo import haversine_distance_km
from pybusmap.models.annotated import AnnotatedVehicle
from pybusmap.models.position import ViewerPosition
from pybusmap.models.vehicle import FeedSnapshot, VehicleObservation


def annotate_vehicle(
    vehicle: VehicleObservation,
    viewer: ViewerPosition | None,
    *,
    nearby_threshold_km: float = NEARBY_THRESHOLD_KM,
) -> AnnotatedVehicle:
    if viewer is None:
        distance = math.inf
    else:
        distance = haversine_distance_km(viewer.latitude, viewer.longitude, vehicle.latitude, vehicle.longitude)
    return AnnotatedVehicle(
        id=vehicle.id,
        latitude=vehicle.latitude,
        longitude=vehicle.longitude,
        route_id=vehicle.route_id,
        distance_km=distance,
        color=color_for_route(vehicle.route_id),
        is_nearby=distance <= nearby_threshold_km,
    )


def build_view_model(
    snapshot: FeedSnapshot | Iterable[VehicleObservation] | None,
    viewer: ViewerPosition | None,
    *,
    nearby_threshold_km: float = NEARBY_THRESHOLD_KM,
) -> list[AnnotatedVehicle]:
    """Annotate every vehicle in *snapshot* with distance, color and proximity.

    Without a viewer every distance is ``math.inf`` and nothing is nearby.
    Output order matches the snapshot order.
    """
    if snapshot is None:
        return []
    vehicles = snapshot.vehicles if isinstance(snapshot, FeedSnapshot) else snapshot
    return [annotate_vehicle(v, viewer, nearby_threshold_km=nearby_threshold_km) for v in vehicles]
