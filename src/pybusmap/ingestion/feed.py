"""Feed parsing.

Converts the JSON body of ``/api/buses`` into :class:`VehicleObservation`
objects.  Parsing is tolerant per entity and strict only at the top level.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from pybusmap.exceptions import FeedParseError
from pybusmap.models.feed import FeedEntity
from pybusmap.models.vehicle import VehicleObservation

_logger = logging.getLogger(__name__)


def _parse_entity(raw: Any) -> VehicleObservation | None:
    if not isinstance(raw, Mapping):
        return None
    try:
        entity = FeedEntity.model_validate(dict(raw))
    except ValidationError:
        return None
    return entity.to_observation()


def parse_feed(entities: Iterable[Any] | None) -> list[VehicleObservation]:
    """Parse feed entities, keeping only those that describe a positioned vehicle on a route.

    Entities without a vehicle position or without a trip route id are
    dropped without error.  Output order follows input order.  Duplicate ids
    are kept but logged, since display layers key markers by id.
    """
    if entities is None:
        return []

    observations: list[VehicleObservation] = []
    seen: set[str] = set()
    dropped = 0
    for index, raw in enumerate(entities):
        observation = _parse_entity(raw)
        if observation is None:
            dropped += 1
            _logger.debug("Dropping feed entity #%d without position or route", index)
            continue
        if observation.id in seen:
            _logger.warning("Duplicate vehicle id %s in feed snapshot", observation.id)
        seen.add(observation.id)
        observations.append(observation)

    if dropped:
        _logger.debug("Parsed %d vehicles, dropped %d entities", len(observations), dropped)
    return observations


def parse_feed_payload(body: Any) -> list[VehicleObservation]:
    """Parse a decoded feed body (``{"entity": [...]}``).

    A missing ``entity`` member is an empty feed: JSON encoders of
    GTFS-realtime omit empty repeated fields.

    Raises
    ------
    FeedParseError
        If *body* is not an object or ``entity`` is not a list.
    """
    if not isinstance(body, Mapping):
        raise FeedParseError(f"Feed body must be a JSON object, got {type(body).__name__}")

    entities = body.get("entity")
    if entities is None:
        return []
    if not isinstance(entities, list):
        raise FeedParseError(f"Feed 'entity' must be a list, got {type(entities).__name__}")
    return parse_feed(entities)
