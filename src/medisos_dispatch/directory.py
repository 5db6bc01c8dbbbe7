from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from medisos_dispatch.models import Ambulance, GeoPoint, Hospital

HOSPITALS_CSV = Path(__file__).parent / "hospitals.csv"

DEFAULT_REFERENCE = GeoPoint(17.385044, 78.486671)

FLEET_ROSTER = [
    ("Raju Kumar", "AP-31-TG-9234", "9876543210"),
    ("Suresh Reddy", "TS-08-AB-1234", "9876543211"),
    ("Venkat Rao", "AP-28-CD-5678", "9876543212"),
    ("Krishna Murthy", "TS-09-EF-9012", "9876543213"),
]

# (dlat, dlng) in degrees from the caller's position
FLEET_OFFSETS = [
    (0.015, 0.012),
    (-0.018, 0.008),
    (0.022, -0.015),
    (-0.01, -0.02),
]


def load_hospitals(path: Path = HOSPITALS_CSV) -> List[Hospital]:
    df = pd.read_csv(path, dtype={"entity_id": str, "phone": str})
    return [
        Hospital(
            entity_id=row.entity_id,
            location=GeoPoint(float(row.latitude), float(row.longitude)),
            name=row.name,
            address=row.address,
            phone=row.phone,
            kind=row.kind,
        )
        for row in df.itertuples(index=False)
    ]


def mock_fleet(reference: GeoPoint) -> List[Ambulance]:
    """Simulated ambulances parked at fixed offsets around ``reference``."""
    fleet = []
    for i, ((driver, vehicle, phone), (dlat, dlng)) in enumerate(zip(FLEET_ROSTER, FLEET_OFFSETS)):
        fleet.append(
            Ambulance(
                entity_id=f"AMB-{100 + i}",
                location=GeoPoint(reference.latitude + dlat, reference.longitude + dlng),
                driver_name=driver,
                vehicle_number=vehicle,
                phone=phone,
            )
        )
    return fleet
