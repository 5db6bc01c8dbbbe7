"""Movement simulation for an ambulance travelling toward a fixed target.

Each call to :func:`advance` is one tick: the ambulance moves a fixed number of
degrees along the straight line to the target, then distance, ETA and status
are recomputed from the new position. The lat/lng step treats the map as a
flat plane, which is close enough over city distances; the distance itself is
always the haversine value.

Nothing here schedules ticks. Callers own the timer and the assignment value.
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import replace
from typing import Callable, Optional

from medisos_dispatch.config import DEFAULT_CONFIG, DispatchConfig
from medisos_dispatch.geo import distance_km, eta_minutes
from medisos_dispatch.models import Ambulance, DispatchStatus, GeoPoint, StatusTransition, TrackedAssignment
from medisos_dispatch.status import classify

logger = logging.getLogger(__name__)

NoiseFn = Callable[[GeoPoint], GeoPoint]


def make_jitter(seed: int, amplitude_degrees: float = 0.0005) -> NoiseFn:
    """Build a seeded noise function that nudges a point by up to ``amplitude_degrees``."""
    rng = random.Random(seed)

    def jitter(point: GeoPoint) -> GeoPoint:
        return replace(
            point,
            latitude=point.latitude + rng.uniform(-amplitude_degrees, amplitude_degrees),
            longitude=point.longitude + rng.uniform(-amplitude_degrees, amplitude_degrees),
        )

    return jitter


def assign(
    ambulance: Ambulance,
    target: GeoPoint,
    now_ms: int,
    config: DispatchConfig = DEFAULT_CONFIG,
) -> TrackedAssignment:
    distance = distance_km(ambulance.location, target)
    logger.info("Assigned %s (%s) at %.2f km from target", ambulance.entity_id, ambulance.vehicle_number, distance)
    return TrackedAssignment(
        ambulance=ambulance,
        target=target,
        position=ambulance.location,
        distance_km=distance,
        eta_minutes=eta_minutes(distance, config.average_speed_kmh),
        status=DispatchStatus.DISPATCHED,
        assigned_at_ms=now_ms,
        transitions=(StatusTransition(DispatchStatus.DISPATCHED, now_ms),),
    )


def advance(
    assignment: TrackedAssignment,
    target: Optional[GeoPoint],
    now_ms: int,
    config: DispatchConfig = DEFAULT_CONFIG,
    noise: Optional[NoiseFn] = None,
) -> TrackedAssignment:
    """Move one tick toward ``target``.

    ``None`` keeps the assignment's own target; a different point retargets the
    assignment, and the returned value carries the new target.
    """
    if target is None:
        target = assignment.target
    elif target != assignment.target:
        logger.info("%s retargeted to %.6f, %.6f", assignment.ambulance.entity_id, target.latitude, target.longitude)
        assignment = replace(assignment, target=target)

    current = assignment.position
    dlat = target.latitude - current.latitude
    dlng = target.longitude - current.longitude
    remaining = math.hypot(dlat, dlng)

    if remaining == 0:
        return _record(
            assignment,
            position=replace(current, captured_at_ms=now_ms),
            distance=0.0,
            eta=0,
            status=DispatchStatus.ARRIVED,
            now_ms=now_ms,
        )

    move_ratio = min(config.step_degrees / remaining, 1)
    if move_ratio >= 1:
        position = GeoPoint(target.latitude, target.longitude, captured_at_ms=now_ms)
    else:
        position = GeoPoint(
            current.latitude + dlat * move_ratio,
            current.longitude + dlng * move_ratio,
            captured_at_ms=now_ms,
        )
    if noise is not None:
        position = noise(position)

    distance = distance_km(position, target)
    fresh_eta = eta_minutes(distance, config.average_speed_kmh)
    if fresh_eta is None:
        # unusable coordinates: NaN distance is reported, ETA and status hold
        return _record(
            assignment,
            position=position,
            distance=distance,
            eta=assignment.eta_minutes,
            status=assignment.status,
            now_ms=now_ms,
        )

    eta = fresh_eta if assignment.eta_minutes is None else min(fresh_eta, assignment.eta_minutes)
    status = classify(distance, eta, assignment.status, now_ms - assignment.assigned_at_ms, config)

    logger.debug("%s at %.3f km, eta %d min", assignment.ambulance.entity_id, distance, eta)
    return _record(assignment, position=position, distance=distance, eta=eta, status=status, now_ms=now_ms)


def _record(
    assignment: TrackedAssignment,
    position: GeoPoint,
    distance: float,
    eta: Optional[int],
    status: DispatchStatus,
    now_ms: int,
) -> TrackedAssignment:
    transitions = assignment.transitions
    if status is not assignment.status:
        logger.info("%s: %s -> %s", assignment.ambulance.entity_id, assignment.status.value, status.value)
        transitions = transitions + (StatusTransition(status, now_ms),)
    return replace(
        assignment,
        position=position,
        distance_km=distance,
        eta_minutes=eta,
        status=status,
        transitions=transitions,
    )


def drift(ambulance: Ambulance, noise: NoiseFn) -> Ambulance:
    """Move an idle ambulance by one noise sample."""
    return replace(ambulance, location=noise(ambulance.location))


def progress_percent(eta: Optional[int], config: DispatchConfig = DEFAULT_CONFIG) -> float:
    if eta is None:
        return 0.0
    return max(0.0, min(100.0, 100 - (eta / config.progress_horizon_minutes) * 100))
