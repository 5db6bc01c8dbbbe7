import pytest

from medisos_dispatch.directory import DEFAULT_REFERENCE, load_hospitals, mock_fleet
from medisos_dispatch.models import AcknowledgmentStatus, DispatchStatus
from medisos_dispatch.simulator import make_jitter
from medisos_dispatch.system import DispatchSystem


def _system() -> DispatchSystem:
    return DispatchSystem(hospitals=load_hospitals(), fleet=mock_fleet(DEFAULT_REFERENCE))


def test_directory_loads_hyderabad_hospitals() -> None:
    hospitals = load_hospitals()

    assert len(hospitals) == 15
    assert hospitals[0].entity_id == "h1"
    assert hospitals[0].name == "Apollo Emergency Hospital"
    assert hospitals[0].phone == "+914027231234"
    assert hospitals[0].address == "Jubilee Hills, Hyderabad"


def test_nearby_hospitals_within_search_radius() -> None:
    system = _system()

    nearby = system.nearby_hospitals(DEFAULT_REFERENCE)

    assert nearby
    assert nearby[0].entity.name == "Osmania General Hospital"
    assert all(item.distance_km <= 10 for item in nearby)
    assert [item.distance_km for item in nearby] == sorted(item.distance_km for item in nearby)
    assert len(system.all_hospitals(DEFAULT_REFERENCE)) == 15
    assert len(system.nearby_hospitals(DEFAULT_REFERENCE, max_distance_km=1)) == 1


def test_dispatch_assigns_nearest_ambulance() -> None:
    system = _system()

    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)

    assert assignment.ambulance.entity_id == "AMB-100"
    assert assignment.status is DispatchStatus.DISPATCHED
    assert assignment.target == DEFAULT_REFERENCE


def test_dispatch_without_fleet_fails() -> None:
    system = DispatchSystem(hospitals=load_hospitals(), fleet=[])

    with pytest.raises(ValueError):
        system.dispatch(DEFAULT_REFERENCE, now_ms=0)


def test_reassign_restarts_tracking() -> None:
    system = _system()
    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)
    for tick in range(1, 5):
        assignment = system.step(assignment, tick * 2000)

    reassigned = system.reassign(assignment, "AMB-102", now_ms=9000)

    assert reassigned.ambulance.entity_id == "AMB-102"
    assert reassigned.status is DispatchStatus.DISPATCHED
    assert reassigned.assigned_at_ms == 9000
    assert reassigned.target == assignment.target

    with pytest.raises(KeyError):
        system.reassign(assignment, "AMB-999", now_ms=9000)


def test_run_until_arrival() -> None:
    system = _system()
    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)

    states = list(system.run(assignment))

    assert states[-1].status is DispatchStatus.ARRIVED
    assert [t.status for t in states[-1].transitions] == list(DispatchStatus)
    assert "has arrived" in " ".join(system.summarize(states[-1]))


def test_step_drifts_idle_fleet_only() -> None:
    system = _system()
    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)
    before = {amb.entity_id: amb.location for amb in system.fleet}

    system.step(assignment, 2000, noise=make_jitter(seed=3))

    after = {amb.entity_id: amb.location for amb in system.fleet}
    assert after["AMB-100"] == before["AMB-100"]
    assert all(after[key] != before[key] for key in ("AMB-101", "AMB-102", "AMB-103"))


def test_hospital_acknowledgments() -> None:
    system = _system()
    nearby = system.nearby_hospitals(DEFAULT_REFERENCE)

    early = system.acknowledgments(DEFAULT_REFERENCE, assigned_at_ms=0, now_ms=3000)
    assert [ack.status for ack in early] == [
        AcknowledgmentStatus.ACKNOWLEDGED,
        AcknowledgmentStatus.PENDING,
        AcknowledgmentStatus.PENDING,
    ]

    late = system.acknowledgments(DEFAULT_REFERENCE, assigned_at_ms=0, now_ms=8000, previous=early)
    assert [ack.hospital.entity_id for ack in late] == [item.entity_id for item in nearby[:3]]
    assert late[0].status is AcknowledgmentStatus.EN_ROUTE
    assert late[0].eta_minutes == nearby[0].eta_minutes
    assert late[1].status is AcknowledgmentStatus.ACKNOWLEDGED
    assert late[1].eta_minutes is None


def test_summary_reports_eta_and_driver() -> None:
    system = _system()
    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)

    summary = system.summarize(assignment)

    assert any("Raju Kumar" in line for line in summary)
    assert any("ETA" in line for line in summary)


def test_step_noise_moves_assigned_ambulance() -> None:
    system = _system()
    assignment = system.dispatch(DEFAULT_REFERENCE, now_ms=0)

    plain = system.step(assignment, 2000)
    noisy = _system().step(assignment, 2000, noise=make_jitter(seed=3))

    assert noisy.position != plain.position
    assert noisy.target == plain.target == DEFAULT_REFERENCE
