from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    captured_at_ms: Optional[int] = None


@dataclass(frozen=True)
class LocatedEntity:
    entity_id: str
    location: GeoPoint


@dataclass(frozen=True)
class Hospital(LocatedEntity):
    name: str = ""
    address: str = ""
    phone: str = ""
    kind: str = "hospital"


@dataclass(frozen=True)
class Ambulance(LocatedEntity):
    driver_name: str = ""
    vehicle_number: str = ""
    phone: str = ""


@dataclass(frozen=True)
class RankedEntity:
    entity: LocatedEntity
    distance_km: float
    eta_minutes: Optional[int]
    rank: int

    @property
    def entity_id(self) -> str:
        return self.entity.entity_id

    @property
    def location(self) -> GeoPoint:
        return self.entity.location


class DispatchStatus(Enum):
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ARRIVING = "arriving"
    ARRIVED = "arrived"

    @property
    def order(self) -> int:
        return list(DispatchStatus).index(self)


class AcknowledgmentStatus(Enum):
    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    DISPATCHING = "dispatching"
    EN_ROUTE = "en_route"

    @property
    def order(self) -> int:
        return list(AcknowledgmentStatus).index(self)


@dataclass(frozen=True)
class StatusTransition:
    status: DispatchStatus
    at_ms: int


@dataclass(frozen=True)
class TrackedAssignment:
    ambulance: Ambulance
    target: GeoPoint
    position: GeoPoint
    distance_km: float
    eta_minutes: Optional[int]
    status: DispatchStatus
    assigned_at_ms: int
    transitions: Tuple[StatusTransition, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HospitalAcknowledgment:
    hospital: Hospital
    status: AcknowledgmentStatus
    updated_at_ms: int
    eta_minutes: Optional[int] = None


@dataclass(frozen=True)
class HospitalAvailability:
    emergency_beds: int
    icu_beds: int
    general_beds: int
    ambulances_available: int
    updated_at_ms: int
