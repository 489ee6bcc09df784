"""Great-circle distance helpers (miles)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

EARTH_RADIUS_MILES = 3959.0
METERS_PER_MILE = 1609.34


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in miles between two points given in decimal degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def _is_number(value) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def distances_from(
    lat: float,
    lng: float,
    latitudes: Iterable[float | None],
    longitudes: Iterable[float | None],
) -> np.ndarray:
    """Distance from (lat, lng) to each coordinate pair; nan where a coordinate is missing.

    Goes through ``distance`` element by element so radius checks agree
    exactly with the scalar function.
    """
    out = [
        distance(lat, lng, float(p_lat), float(p_lng))
        if _is_number(p_lat) and _is_number(p_lng)
        else np.nan
        for p_lat, p_lng in zip(latitudes, longitudes)
    ]
    return np.asarray(out, dtype=float)


def miles_to_meters(miles: float) -> float:
    return float(miles) * METERS_PER_MILE
