from __future__ import annotations

from medisos_dispatch.config import DEFAULT_CONFIG, DispatchConfig
from medisos_dispatch.models import AcknowledgmentStatus, DispatchStatus


def classify(
    distance_km: float,
    eta_minutes: int,
    previous_status: DispatchStatus,
    elapsed_ms: int,
    config: DispatchConfig = DEFAULT_CONFIG,
) -> DispatchStatus:
    """Derive the dispatch status from distance, ETA and time since assignment.

    The result never falls behind ``previous_status``: position jitter can push
    the raw thresholds backwards, so a regression returns the previous status.
    """
    if eta_minutes <= config.arrived_eta_minutes or distance_km < config.arrived_distance_km:
        status = DispatchStatus.ARRIVED
    elif eta_minutes <= config.arriving_eta_minutes or distance_km < config.arriving_distance_km:
        status = DispatchStatus.ARRIVING
    elif elapsed_ms > config.settle_window_ms:
        status = DispatchStatus.EN_ROUTE
    else:
        status = DispatchStatus.DISPATCHED

    if status.order < previous_status.order:
        return previous_status
    return status


def classify_acknowledgment(
    position: int,
    elapsed_ms: int,
    previous_status: AcknowledgmentStatus = AcknowledgmentStatus.PENDING,
    config: DispatchConfig = DEFAULT_CONFIG,
) -> AcknowledgmentStatus:
    """Hospital-side status for the hospital at ``position`` (0 = closest).

    Every notified hospital acknowledges after a staggered delay; only the
    closest one goes on to dispatch its own crew.
    """
    status = AcknowledgmentStatus.PENDING
    if elapsed_ms >= config.acknowledge_after_ms + position * config.acknowledge_stagger_ms:
        status = AcknowledgmentStatus.ACKNOWLEDGED
    if position == 0:
        if elapsed_ms >= config.hospital_en_route_after_ms:
            status = AcknowledgmentStatus.EN_ROUTE
        elif elapsed_ms >= config.hospital_dispatching_after_ms:
            status = AcknowledgmentStatus.DISPATCHING

    if status.order < previous_status.order:
        return previous_status
    return status
