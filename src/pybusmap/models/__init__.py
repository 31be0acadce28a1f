"""Typed models for pybusmap."""

from pybusmap.models.annotated import AnnotatedVehicle
from pybusmap.models.feed import FeedEntity, FeedPosition, TripDescriptor, VehicleDescriptor, VehiclePayload
from pybusmap.models.position import ViewerPosition
from pybusmap.models.vehicle import FeedSnapshot, VehicleObservation

__all__ = [
    "AnnotatedVehicle",
    "FeedEntity",
    "FeedPosition",
    "FeedSnapshot",
    "TripDescriptor",
    "VehicleDescriptor",
    "VehicleObservation",
    "VehiclePayload",
    "ViewerPosition",
]
