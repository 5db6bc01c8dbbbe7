"""Simulated bed and ambulance availability for the hospital directory.

Counts start at random values and then move by one unit per update: beds never
drop below zero and a hospital never reports more than
``MAX_AMBULANCES_AVAILABLE`` ambulances. General bed counts do not change.
"""
from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Dict, Iterable, Optional

from medisos_dispatch.models import Hospital, HospitalAvailability

logger = logging.getLogger(__name__)

MAX_AMBULANCES_AVAILABLE = 5


def generate_availability(rng: random.Random, now_ms: int) -> HospitalAvailability:
    return HospitalAvailability(
        emergency_beds=rng.randint(1, 8),
        icu_beds=rng.randint(1, 5),
        general_beds=rng.randint(10, 39),
        ambulances_available=rng.randint(1, 4),
        updated_at_ms=now_ms,
    )


def update_availability(
    availability: HospitalAvailability,
    rng: random.Random,
    now_ms: int,
) -> HospitalAvailability:
    emergency_step = 1 if rng.random() > 0.5 else -1
    # ICU beds free up less often than they fill
    icu_step = 1 if rng.random() > 0.7 else -1
    ambulance_step = 1 if rng.random() > 0.5 else -1

    return replace(
        availability,
        emergency_beds=max(0, availability.emergency_beds + emergency_step),
        icu_beds=max(0, availability.icu_beds + icu_step),
        ambulances_available=max(
            0, min(MAX_AMBULANCES_AVAILABLE, availability.ambulances_available + ambulance_step)
        ),
        updated_at_ms=now_ms,
    )


class AvailabilityBoard:
    """Current availability per hospital id, driven by one seeded generator."""

    def __init__(self, hospitals: Iterable[Hospital], seed: Optional[int] = None, now_ms: int = 0) -> None:
        self.rng = random.Random(seed)
        self.snapshot: Dict[str, HospitalAvailability] = {
            hospital.entity_id: generate_availability(self.rng, now_ms) for hospital in hospitals
        }

    def get(self, hospital_id: str) -> Optional[HospitalAvailability]:
        return self.snapshot.get(hospital_id)

    def refresh(self, now_ms: int) -> Dict[str, HospitalAvailability]:
        self.snapshot = {
            hospital_id: update_availability(availability, self.rng, now_ms)
            for hospital_id, availability in self.snapshot.items()
        }
        logger.debug("Refreshed availability for %d hospitals", len(self.snapshot))
        return self.snapshot
