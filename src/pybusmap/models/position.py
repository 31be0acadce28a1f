"""Viewer position model."""

from __future__ import annotations

from pydantic import Field

from pybusmap.models._base import BusMapModel


class ViewerPosition(BusMapModel):
    """Reference position distances are measured from.

    Parameters
    ----------
    latitude : float
        Latitude in degrees, ``[-90, 90]``.
    longitude : float
        Longitude in degrees, ``[-180, 180]``.
    is_fallback : bool
        ``True`` when the position is the configured default rather than
        a live device fix.
    """

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    is_fallback: bool = False

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)
