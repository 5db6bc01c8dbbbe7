from __future__ import annotations

import math
from typing import Optional

from medisos_dispatch.models import GeoPoint

EARTH_RADIUS_KM = 6371.0


def distance_km(origin: GeoPoint, target: GeoPoint) -> float:
    """Great-circle distance between two points using the haversine formula.

    Coordinates are not validated; NaN inputs produce NaN.
    """
    lat1, lon1 = math.radians(origin.latitude), math.radians(origin.longitude)
    lat2, lon2 = math.radians(target.latitude), math.radians(target.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def eta_minutes(distance: float, average_speed_kmh: float) -> Optional[int]:
    """Whole minutes at ``average_speed_kmh``, halves rounded up; ``None`` for a non-finite distance."""
    if not math.isfinite(distance):
        return None
    return max(0, math.floor(distance / max(average_speed_kmh, 1) * 60 + 0.5))


def format_eta(minutes: Optional[int]) -> str:
    if minutes is None:
        return "unknown"
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"
