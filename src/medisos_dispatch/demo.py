from __future__ import annotations

import logging

import pandas as pd

from medisos_dispatch.availability import AvailabilityBoard
from medisos_dispatch.directory import DEFAULT_REFERENCE, load_hospitals, mock_fleet
from medisos_dispatch.geo import format_eta
from medisos_dispatch.system import DispatchSystem


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    reference = DEFAULT_REFERENCE
    hospitals = load_hospitals()
    system = DispatchSystem(hospitals=hospitals, fleet=mock_fleet(reference))
    availability = AvailabilityBoard(hospitals, seed=7)

    nearby = system.nearby_hospitals(reference)
    table = pd.DataFrame(
        [
            {
                "rank": item.rank,
                "hospital": item.entity.name,
                "distance_km": round(item.distance_km, 2),
                "eta": format_eta(item.eta_minutes),
                "er_beds": availability.get(item.entity_id).emergency_beds,
                "icu_beds": availability.get(item.entity_id).icu_beds,
            }
            for item in nearby
        ]
    )

    print("=== MediSOS Nearby Hospitals ===")
    print(table.to_string(index=False))

    assignment = system.dispatch(reference, now_ms=0)
    print("\n=== Ambulance Dispatch ===")
    for line in system.summarize(assignment):
        print(f" - {line}")

    ticks = 0
    for assignment in system.run(assignment):
        ticks += 1

    print(f"\nArrived after {ticks} ticks ({ticks * system.config.tick_interval_ms / 1000:.0f} s simulated).")
    for transition in assignment.transitions:
        print(f" - {transition.at_ms / 1000:>6.1f}s  {transition.status.value}")

    print("\nHospital responses:")
    for ack in system.acknowledgments(reference, assignment.assigned_at_ms, now_ms=10_000):
        eta = f" (ETA {ack.eta_minutes} min)" if ack.eta_minutes is not None else ""
        print(f" - {ack.hospital.name}: {ack.status.value}{eta}")


if __name__ == "__main__":
    main()
