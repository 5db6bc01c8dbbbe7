from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Sequence

from medisos_dispatch import simulator
from medisos_dispatch.config import DEFAULT_CONFIG, DispatchConfig
from medisos_dispatch.geo import format_eta
from medisos_dispatch.models import (
    AcknowledgmentStatus,
    Ambulance,
    DispatchStatus,
    GeoPoint,
    Hospital,
    HospitalAcknowledgment,
    RankedEntity,
    TrackedAssignment,
)
from medisos_dispatch.ranking import nearest, rank
from medisos_dispatch.status import classify_acknowledgment

logger = logging.getLogger(__name__)


class DispatchSystem:
    def __init__(
        self,
        hospitals: Iterable[Hospital],
        fleet: Iterable[Ambulance],
        config: DispatchConfig = DEFAULT_CONFIG,
    ) -> None:
        self.config = config
        self.hospitals = list(hospitals)
        self.fleet = list(fleet)

    def nearby_hospitals(self, reference: GeoPoint, max_distance_km: Optional[float] = None) -> List[RankedEntity]:
        if max_distance_km is None:
            max_distance_km = self.config.search_radius_km
        return rank(reference, self.hospitals, max_distance_km=max_distance_km, config=self.config)

    def all_hospitals(self, reference: GeoPoint) -> List[RankedEntity]:
        return rank(reference, self.hospitals, config=self.config)

    def dispatch(self, reference: GeoPoint, now_ms: int) -> TrackedAssignment:
        closest = nearest(reference, self.fleet, config=self.config)
        if closest is None:
            raise ValueError("No ambulance available for dispatch")
        logger.info("Dispatching nearest ambulance %s (%.2f km)", closest.entity_id, closest.distance_km)
        return simulator.assign(closest.entity, reference, now_ms, self.config)

    def reassign(self, assignment: TrackedAssignment, ambulance_id: str, now_ms: int) -> TrackedAssignment:
        for ambulance in self.fleet:
            if ambulance.entity_id == ambulance_id:
                logger.info("Reassigning dispatch from %s to %s", assignment.ambulance.entity_id, ambulance_id)
                return simulator.assign(ambulance, assignment.target, now_ms, self.config)
        raise KeyError(ambulance_id)

    def step(
        self,
        assignment: TrackedAssignment,
        now_ms: int,
        noise: Optional[simulator.NoiseFn] = None,
    ) -> TrackedAssignment:
        """Advance the assigned ambulance one tick.

        ``noise`` perturbs the assigned ambulance's new position and also drifts
        every idle fleet member.
        """
        if noise is not None:
            self.fleet = [
                amb if amb.entity_id == assignment.ambulance.entity_id else simulator.drift(amb, noise)
                for amb in self.fleet
            ]
        return simulator.advance(assignment, None, now_ms, self.config, noise=noise)

    def run(self, assignment: TrackedAssignment, max_ticks: int = 2000) -> Iterator[TrackedAssignment]:
        now_ms = assignment.assigned_at_ms
        for _ in range(max_ticks):
            if assignment.status is DispatchStatus.ARRIVED:
                return
            now_ms += self.config.tick_interval_ms
            assignment = self.step(assignment, now_ms)
            yield assignment

    def acknowledgments(
        self,
        reference: GeoPoint,
        assigned_at_ms: int,
        now_ms: int,
        previous: Optional[Sequence[HospitalAcknowledgment]] = None,
    ) -> List[HospitalAcknowledgment]:
        notified = self.nearby_hospitals(reference)[: self.config.notified_hospitals]
        previous_by_id = {ack.hospital.entity_id: ack for ack in previous or []}
        elapsed = now_ms - assigned_at_ms

        board = []
        for position, ranked in enumerate(notified):
            prior = previous_by_id.get(ranked.entity_id)
            prior_status = prior.status if prior else AcknowledgmentStatus.PENDING
            status = classify_acknowledgment(position, elapsed, prior_status, self.config)
            if prior is not None and status is prior.status:
                board.append(prior)
                continue
            board.append(
                HospitalAcknowledgment(
                    hospital=ranked.entity,
                    status=status,
                    updated_at_ms=now_ms,
                    eta_minutes=ranked.eta_minutes if status is AcknowledgmentStatus.EN_ROUTE else None,
                )
            )
        return board

    def summarize(self, assignment: TrackedAssignment) -> List[str]:
        ambulance = assignment.ambulance
        actions = [
            f"Ambulance {ambulance.entity_id} ({ambulance.vehicle_number}) driven by {ambulance.driver_name}.",
            f"Status: {assignment.status.value.replace('_', ' ')}.",
        ]

        if assignment.status is DispatchStatus.ARRIVED:
            actions.append("Ambulance has arrived. Meet the crew at the pickup point.")
        else:
            progress = simulator.progress_percent(assignment.eta_minutes, self.config)
            actions.append(
                f"ETA {format_eta(assignment.eta_minutes)}, distance {assignment.distance_km:.2f} km "
                f"({progress:.0f}% complete)."
            )
            actions.append(f"Driver can be reached on {ambulance.phone}.")

        return actions
