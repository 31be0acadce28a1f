from __future__ import annotations

import math

import pytest

from pybusmap.colors import color_for_route
from pybusmap.ingestion.feed import parse_feed_payload
from pybusmap.models.position import ViewerPosition
from pybusmap.models.vehicle import FeedSnapshot, VehicleObservation
from pybusmap.view import build_view_model

SYDNEY = ViewerPosition(latitude=-33.8688, longitude=151.2093)


def _snapshot(*vehicles: VehicleObservation) -> FeedSnapshot:
    return FeedSnapshot(vehicles=vehicles)


def test_nearby_bus_in_sydney() -> None:
    body = {
        "entity": [
            {
                "id": "1",
                "vehicle": {"position": {"latitude": -33.87, "longitude": 151.21}, "trip": {"routeId": "M20"}},
            }
        ]
    }
    snapshot = _snapshot(*parse_feed_payload(body))

    (bus,) = build_view_model(snapshot, SYDNEY)

    assert bus.id == "1"
    assert bus.route_id == "M20"
    assert bus.distance_km == pytest.approx(0.148, abs=0.001)
    assert bus.distance_label == "0.15 km"
    assert bus.is_nearby is True
    assert bus.color == color_for_route("M20")


def test_without_viewer_distance_is_infinite() -> None:
    snapshot = _snapshot(VehicleObservation(id="1", latitude=-33.87, longitude=151.21, route_id="M20"))

    (bus,) = build_view_model(snapshot, None)

    assert math.isinf(bus.distance_km)
    assert bus.is_nearby is False
    assert bus.has_distance is False
    assert bus.distance_label == "unknown"


def test_far_vehicle_is_not_nearby_and_order_is_kept() -> None:
    snapshot = _snapshot(
        VehicleObservation(id="far", latitude=-33.95, longitude=151.18, route_id="400"),
        VehicleObservation(id="near", latitude=-33.87, longitude=151.21, route_id="M20"),
        VehicleObservation(id="parramatta", latitude=-33.815, longitude=151.0, route_id="T1"),
    )

    result = build_view_model(snapshot, SYDNEY)

    assert [v.id for v in result] == ["far", "near", "parramatta"]
    assert [v.is_nearby for v in result] == [False, True, False]
    assert all(v.distance_km > 5.0 for v in result if not v.is_nearby)


def test_threshold_is_inclusive_and_overridable() -> None:
    vehicle = VehicleObservation(id="1", latitude=1.0, longitude=0.0, route_id="R")
    viewer = ViewerPosition(latitude=0.0, longitude=0.0)
    one_degree_km = 6371.0 * math.pi / 180.0

    (at_edge,) = build_view_model([vehicle], viewer, nearby_threshold_km=one_degree_km + 1e-9)
    (outside,) = build_view_model([vehicle], viewer, nearby_threshold_km=100.0)

    assert at_edge.is_nearby is True
    assert outside.is_nearby is False


def test_empty_inputs() -> None:
    assert build_view_model(None, SYDNEY) == []
    assert build_view_model(_snapshot(), SYDNEY) == []


def test_build_is_pure() -> None:
    snapshot = _snapshot(VehicleObservation(id="1", latitude=-33.87, longitude=151.21, route_id="M20"))
    assert build_view_model(snapshot, SYDNEY) == build_view_model(snapshot, SYDNEY)
    assert len(snapshot.vehicles) == 1
