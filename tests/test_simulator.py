import math

from medisos_dispatch.config import DispatchConfig
from medisos_dispatch.models import Ambulance, DispatchStatus, GeoPoint
from medisos_dispatch.simulator import advance, assign, drift, make_jitter, progress_percent

TARGET = GeoPoint(17.385, 78.486)


def _ambulance_at(location: GeoPoint) -> Ambulance:
    return Ambulance(
        entity_id="AMB-1",
        location=location,
        driver_name="Raju Kumar",
        vehicle_number="AP-31-TG-9234",
        phone="9876543210",
    )


def test_assign_starts_dispatched() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=1000)

    assert assignment.status is DispatchStatus.DISPATCHED
    assert assignment.assigned_at_ms == 1000
    assert abs(assignment.distance_km - 5.0) < 0.01
    assert assignment.eta_minutes == 10
    assert [t.status for t in assignment.transitions] == [DispatchStatus.DISPATCHED]


def test_advance_converges_and_stays_arrived() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=0)
    now_ms = 0
    ticks = 0

    while assignment.status is not DispatchStatus.ARRIVED and ticks < 2000:
        now_ms += 2000
        ticks += 1
        assignment = advance(assignment, TARGET, now_ms)

    assert assignment.status is DispatchStatus.ARRIVED
    assert ticks < 2000

    for _ in range(20):
        now_ms += 2000
        assignment = advance(assignment, TARGET, now_ms)

    assert assignment.distance_km == 0
    assert assignment.eta_minutes == 0
    assert assignment.status is DispatchStatus.ARRIVED
    assert (assignment.position.latitude, assignment.position.longitude) == (TARGET.latitude, TARGET.longitude)

    assignment = advance(assignment, TARGET, now_ms + 2000)
    assert assignment.distance_km == 0
    assert assignment.status is DispatchStatus.ARRIVED


def test_advance_passes_through_every_status() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=0)
    for tick in range(1, 100):
        assignment = advance(assignment, TARGET, tick * 2000)

    assert [t.status for t in assignment.transitions] == list(DispatchStatus)
    assert [t.at_ms for t in assignment.transitions] == sorted(t.at_ms for t in assignment.transitions)


def test_advance_at_target_short_circuits() -> None:
    assignment = assign(_ambulance_at(TARGET), TARGET, now_ms=0)

    arrived = advance(assignment, TARGET, now_ms=10)

    assert arrived.distance_km == 0
    assert arrived.eta_minutes == 0
    assert arrived.status is DispatchStatus.ARRIVED


def test_advance_never_overshoots() -> None:
    start = GeoPoint(TARGET.latitude + 0.0004, TARGET.longitude)
    assignment = assign(_ambulance_at(start), TARGET, now_ms=0)

    moved = advance(assignment, TARGET, now_ms=2000)

    assert moved.position.latitude == TARGET.latitude
    assert moved.distance_km == 0


def test_step_size_is_configurable() -> None:
    config = DispatchConfig(step_degrees=0.01)
    start = GeoPoint(TARGET.latitude + 0.05, TARGET.longitude)
    assignment = assign(_ambulance_at(start), TARGET, now_ms=0, config=config)

    moved = advance(assignment, TARGET, now_ms=2000, config=config)

    assert abs(moved.position.latitude - (TARGET.latitude + 0.04)) < 1e-9


def test_jitter_keeps_status_and_eta_monotonic() -> None:
    noise = make_jitter(seed=7, amplitude_degrees=0.0005)
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.49)), TARGET, now_ms=0)
    history = [assignment]

    for tick in range(1, 200):
        assignment = advance(assignment, TARGET, tick * 2000, noise=noise)
        history.append(assignment)

    orders = [item.status.order for item in history]
    etas = [item.eta_minutes for item in history]
    assert orders == sorted(orders)
    assert etas == sorted(etas, reverse=True)
    assert history[-1].status is DispatchStatus.ARRIVED
    assert all(item.distance_km >= 0 for item in history)


def test_seeded_jitter_is_reproducible() -> None:
    first = make_jitter(seed=42)
    second = make_jitter(seed=42)
    points = [first(TARGET) for _ in range(5)]

    assert points == [second(TARGET) for _ in range(5)]
    assert points[0] != TARGET


def test_drift_moves_idle_ambulance() -> None:
    ambulance = _ambulance_at(TARGET)

    moved = drift(ambulance, make_jitter(seed=1))

    assert moved.entity_id == ambulance.entity_id
    assert moved.location != ambulance.location


def test_progress_percent() -> None:
    assert progress_percent(15) == 0
    assert progress_percent(30) == 0
    assert progress_percent(0) == 100
    assert round(progress_percent(6)) == 60


def test_advance_without_target_uses_assignment_target() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=0)

    implicit = advance(assignment, None, 2000)
    explicit = advance(assignment, TARGET, 2000)

    assert implicit == explicit
    assert implicit.target == TARGET


def test_advance_toward_new_target_updates_assignment() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=0)
    moved = GeoPoint(17.45, 78.486)

    updated = advance(assignment, moved, 2000)

    assert updated.target == moved
    assert updated.position.latitude > assignment.position.latitude
    assert updated.distance_km < 2.3


def test_advance_with_nan_target_keeps_eta_and_status() -> None:
    assignment = assign(_ambulance_at(GeoPoint(17.43, 78.486)), TARGET, now_ms=0)

    updated = advance(assignment, GeoPoint(float("nan"), 78.486), 2000)

    assert math.isnan(updated.distance_km)
    assert updated.eta_minutes == assignment.eta_minutes
    assert updated.status is DispatchStatus.DISPATCHED
    assert len(updated.transitions) == 1


def test_progress_unknown_eta() -> None:
    assert progress_percent(None) == 0.0
