from __future__ import annotations

import math
from typing import Iterable, List, Optional

from medisos_dispatch.config import DEFAULT_CONFIG, DispatchConfig
from medisos_dispatch.geo import distance_km, eta_minutes
from medisos_dispatch.models import GeoPoint, LocatedEntity, RankedEntity


def rank(
    reference: GeoPoint,
    entities: Iterable[LocatedEntity],
    max_distance_km: Optional[float] = None,
    config: DispatchConfig = DEFAULT_CONFIG,
) -> List[RankedEntity]:
    """Rank ``entities`` by distance from ``reference``.

    Entities with unusable coordinates keep their NaN distance and sort after
    every measurable one. They cannot be shown to lie within a radius, so
    ``max_distance_km`` drops them.
    """
    measured = []
    for entity in entities:
        distance = distance_km(reference, entity.location)
        if max_distance_km is not None and not distance <= max_distance_km:
            continue
        measured.append((entity, distance))

    # sorted() is stable, so equal distances keep their input order
    measured = sorted(measured, key=lambda item: (math.isnan(item[1]), 0.0 if math.isnan(item[1]) else item[1]))

    return [
        RankedEntity(
            entity=entity,
            distance_km=distance,
            eta_minutes=eta_minutes(distance, config.average_speed_kmh),
            rank=position,
        )
        for position, (entity, distance) in enumerate(measured, start=1)
    ]


def nearest(
    reference: GeoPoint,
    entities: Iterable[LocatedEntity],
    config: DispatchConfig = DEFAULT_CONFIG,
) -> Optional[RankedEntity]:
    ranked = rank(reference, entities, config=config)
    return ranked[0] if ranked else None
