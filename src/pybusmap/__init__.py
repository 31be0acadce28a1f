"""pybusmap - Async live transit-vehicle feed client for map displays."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybusmap")
except PackageNotFoundError:
    __version__ = "0+local"
from pybusmap.client import LiveMapClient
from pybusmap.colors import color_for_route, route_hue
from pybusmap.config import LiveMapConfig
from pybusmap.exceptions import (
    BusMapConfigError,
    BusMapError,
    BusMapTransportError,
    FeedParseError,
    LocationError,
)
from pybusmap.geo import haversine_distance_km
from pybusmap.ingestion.feed import parse_feed, parse_feed_payload
from pybusmap.location import IpGeolocator, LocationProvider, StaticGeolocator
from pybusmap.models import AnnotatedVehicle, FeedSnapshot, VehicleObservation, ViewerPosition
from pybusmap.poller import FeedPoller, PollerPhase
from pybusmap.state.events import StateChange
from pybusmap.state.store import LiveMapState
from pybusmap.view import build_view_model

__all__ = [
    "__version__",
    "AnnotatedVehicle",
    "BusMapConfigError",
    "BusMapError",
    "BusMapTransportError",
    "FeedParseError",
    "FeedPoller",
    "FeedSnapshot",
    "IpGeolocator",
    "LiveMapClient",
    "LiveMapConfig",
    "LiveMapState",
    "LocationError",
    "LocationProvider",
    "PollerPhase",
    "StateChange",
    "StaticGeolocator",
    "VehicleObservation",
    "ViewerPosition",
    "build_view_model",
    "color_for_route",
    "haversine_distance_km",
    "parse_feed",
    "parse_feed_payload",
    "route_hue",
]
