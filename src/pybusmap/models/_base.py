"""Base model for pybusmap data types.

Every model inherits from :class:`BusMapModel` which provides:

* ``alias_generator=to_camel`` so the feed's camelCase keys (``routeId``)
  map to snake_case fields, while ``populate_by_name`` keeps accepting the
  snake_case spelling some GTFS-realtime JSON encoders emit.
* Frozen instances: snapshots are shared between the poller and readers
  and must never be mutated in place.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BusMapModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
