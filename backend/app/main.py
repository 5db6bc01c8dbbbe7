from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from medisos_dispatch.availability import AvailabilityBoard
from medisos_dispatch.config import DispatchConfig
from medisos_dispatch.directory import load_hospitals, mock_fleet
from medisos_dispatch.geo import format_eta
from medisos_dispatch.models import DispatchStatus, GeoPoint, RankedEntity, TrackedAssignment
from medisos_dispatch.simulator import progress_percent
from medisos_dispatch.system import DispatchSystem

from .config import AVAILABILITY_SEED, AVERAGE_SPEED_KMH, DEFAULT_LATITUDE, DEFAULT_LONGITUDE, LOG_LEVEL, SEARCH_RADIUS_KM
from .db import get_conn, init_db, now_iso, now_ms

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="MediSOS Dispatch Tracking")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

dispatch_config = DispatchConfig(average_speed_kmh=AVERAGE_SPEED_KMH, search_radius_km=SEARCH_RADIUS_KM)
hospitals = load_hospitals()
availability_board = AvailabilityBoard(hospitals, seed=AVAILABILITY_SEED, now_ms=now_ms())


@app.on_event("startup")
def startup() -> None:
    init_db()
    logger.info("Loaded %d hospitals, search radius %.1f km", len(hospitals), SEARCH_RADIUS_KM)


def build_system(reference: GeoPoint) -> DispatchSystem:
    return DispatchSystem(hospitals=hospitals, fleet=mock_fleet(reference), config=dispatch_config)


def write_audit(dispatch_id: int | None, action: str, request: Request, details: str = "") -> None:
    ip = request.client.host if request.client else "unknown"
    with get_conn() as conn:
        conn.execute(
            "INSERT INTO audit_logs (dispatch_id,action,ip_address,details,created_at) VALUES (?,?,?,?,?)",
            (dispatch_id, action, ip, details, now_iso()),
        )


def get_dispatch_row(dispatch_id: int):
    with get_conn() as conn:
        row = conn.execute("SELECT * FROM dispatches WHERE id=?", (dispatch_id,)).fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Dispatch not found")
    return row


def load_assignment(row) -> tuple[DispatchSystem, TrackedAssignment]:
    target = GeoPoint(row["target_latitude"], row["target_longitude"])
    system = build_system(target)
    ambulance = next(amb for amb in system.fleet if amb.entity_id == row["ambulance_id"])
    assignment = TrackedAssignment(
        ambulance=ambulance,
        target=target,
        position=GeoPoint(row["latitude"], row["longitude"], captured_at_ms=row["last_tick_ms"]),
        distance_km=row["distance_km"],
        eta_minutes=row["eta_minutes"],
        status=DispatchStatus(row["status"]),
        assigned_at_ms=row["assigned_at_ms"],
    )
    return system, assignment


def save_assignment(dispatch_id: int, assignment: TrackedAssignment, tick_ms: int) -> None:
    with get_conn() as conn:
        conn.execute(
            """
            UPDATE dispatches SET ambulance_id=?, latitude=?, longitude=?, distance_km=?, eta_minutes=?, status=?,
                assigned_at_ms=?, last_tick_ms=?, updated_at=?
            WHERE id=?
            """,
            (
                assignment.ambulance.entity_id,
                assignment.position.latitude,
                assignment.position.longitude,
                assignment.distance_km,
                assignment.eta_minutes,
                assignment.status.value,
                assignment.assigned_at_ms,
                tick_ms,
                now_iso(),
                dispatch_id,
            ),
        )
        for transition in assignment.transitions:
            conn.execute(
                "INSERT INTO status_transitions (dispatch_id,status,at_ms,created_at) VALUES (?,?,?,?)",
                (dispatch_id, transition.status.value, transition.at_ms, now_iso()),
            )


def serialize_dispatch(dispatch_id: int, assignment: TrackedAssignment, cancelled: bool = False) -> dict:
    ambulance = assignment.ambulance
    return {
        "id": dispatch_id,
        "ambulance": {
            "id": ambulance.entity_id,
            "driver_name": ambulance.driver_name,
            "vehicle_number": ambulance.vehicle_number,
            "phone": ambulance.phone,
        },
        "location": {"latitude": assignment.position.latitude, "longitude": assignment.position.longitude},
        "target": {"latitude": assignment.target.latitude, "longitude": assignment.target.longitude},
        "distance_km": round(assignment.distance_km, 3),
        "eta_minutes": assignment.eta_minutes,
        "eta_label": format_eta(assignment.eta_minutes),
        "progress_percent": round(progress_percent(assignment.eta_minutes, dispatch_config), 1),
        "status": assignment.status.value,
        "assigned_at_ms": assignment.assigned_at_ms,
        "cancelled": cancelled,
    }


def serialize_ranked(item: RankedEntity) -> dict:
    hospital = item.entity
    availability = availability_board.get(hospital.entity_id)
    return {
        "id": hospital.entity_id,
        "rank": item.rank,
        "name": hospital.name,
        "address": hospital.address,
        "phone": hospital.phone,
        "type": hospital.kind,
        "latitude": hospital.location.latitude,
        "longitude": hospital.location.longitude,
        "distance_km": round(item.distance_km, 3),
        "eta_minutes": item.eta_minutes,
        "eta_label": format_eta(item.eta_minutes),
        "availability": None if availability is None else {
            "emergency_beds": availability.emergency_beds,
            "icu_beds": availability.icu_beds,
            "general_beds": availability.general_beds,
            "ambulances_available": availability.ambulances_available,
            "updated_at_ms": availability.updated_at_ms,
        },
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/hospitals")
def nearby_hospitals(
    latitude: float = DEFAULT_LATITUDE,
    longitude: float = DEFAULT_LONGITUDE,
    max_distance_km: Optional[float] = None,
    include_all: bool = False,
):
    availability_board.refresh(now_ms())
    reference = GeoPoint(latitude, longitude)
    system = build_system(reference)
    if include_all:
        ranked = system.all_hospitals(reference)
    else:
        ranked = system.nearby_hospitals(reference, max_distance_km)
    return [serialize_ranked(item) for item in ranked]


@app.post("/dispatches")
def create_dispatch(
    request: Request,
    latitude: float = Form(...),
    longitude: float = Form(...),
    at_ms: Optional[int] = Form(None),
):
    reference = GeoPoint(latitude, longitude)
    system = build_system(reference)
    started = now_ms() if at_ms is None else at_ms
    try:
        assignment = system.dispatch(reference, started)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    with get_conn() as conn:
        conn.execute(
            """
            INSERT INTO dispatches (
                ambulance_id,target_latitude,target_longitude,latitude,longitude,distance_km,eta_minutes,status,
                assigned_at_ms,last_tick_ms,created_at,updated_at
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                assignment.ambulance.entity_id,
                latitude,
                longitude,
                assignment.position.latitude,
                assignment.position.longitude,
                assignment.distance_km,
                assignment.eta_minutes,
                assignment.status.value,
                started,
                started,
                now_iso(),
                now_iso(),
            ),
        )
        dispatch_id = conn.execute("SELECT last_insert_rowid() as id").fetchone()["id"]
        for transition in assignment.transitions:
            conn.execute(
                "INSERT INTO status_transitions (dispatch_id,status,at_ms,created_at) VALUES (?,?,?,?)",
                (dispatch_id, transition.status.value, transition.at_ms, now_iso()),
            )

    write_audit(dispatch_id, "create_dispatch", request, f"ambulance_id={assignment.ambulance.entity_id}")
    return serialize_dispatch(dispatch_id, assignment)


@app.get("/dispatches/{dispatch_id}")
def get_dispatch(dispatch_id: int):
    row = get_dispatch_row(dispatch_id)
    _, assignment = load_assignment(row)
    return serialize_dispatch(dispatch_id, assignment, cancelled=bool(row["cancelled"]))


@app.post("/dispatches/{dispatch_id}/tick")
def tick_dispatch(dispatch_id: int, request: Request, at_ms: Optional[int] = Form(None)):
    row = get_dispatch_row(dispatch_id)
    if row["cancelled"]:
        raise HTTPException(status_code=409, detail="Dispatch was cancelled")
    if row["status"] == DispatchStatus.ARRIVED.value:
        raise HTTPException(status_code=409, detail="Ambulance has already arrived")

    system, assignment = load_assignment(row)
    tick_ms = now_ms() if at_ms is None else at_ms
    updated = system.step(assignment, tick_ms)
    save_assignment(dispatch_id, updated, tick_ms)

    if updated.status is not assignment.status:
        write_audit(dispatch_id, "status_change", request, f"{assignment.status.value}->{updated.status.value}")
    return serialize_dispatch(dispatch_id, updated)


@app.post("/dispatches/{dispatch_id}/reassign")
def reassign_dispatch(
    dispatch_id: int,
    request: Request,
    ambulance_id: str = Form(...),
    at_ms: Optional[int] = Form(None),
):
    row = get_dispatch_row(dispatch_id)
    if row["cancelled"]:
        raise HTTPException(status_code=409, detail="Dispatch was cancelled")

    system, assignment = load_assignment(row)
    started = now_ms() if at_ms is None else at_ms
    try:
        updated = system.reassign(assignment, ambulance_id, started)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown ambulance {ambulance_id}") from exc

    save_assignment(dispatch_id, updated, started)
    write_audit(dispatch_id, "reassign", request, f"{assignment.ambulance.entity_id}->{ambulance_id}")
    return serialize_dispatch(dispatch_id, updated)


@app.delete("/dispatches/{dispatch_id}")
def cancel_dispatch(dispatch_id: int, request: Request):
    get_dispatch_row(dispatch_id)
    with get_conn() as conn:
        conn.execute("UPDATE dispatches SET cancelled=1, updated_at=? WHERE id=?", (now_iso(), dispatch_id))
    write_audit(dispatch_id, "cancel", request)
    return {"ok": True, "dispatch_id": dispatch_id, "cancelled": True}


@app.get("/dispatches/{dispatch_id}/transitions")
def dispatch_transitions(dispatch_id: int):
    get_dispatch_row(dispatch_id)
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT status, at_ms, created_at FROM status_transitions WHERE dispatch_id=? ORDER BY id",
            (dispatch_id,),
        ).fetchall()
    return [dict(r) for r in rows]


@app.get("/dispatches/{dispatch_id}/acknowledgments")
def dispatch_acknowledgments(dispatch_id: int, at_ms: Optional[int] = None):
    row = get_dispatch_row(dispatch_id)
    system, assignment = load_assignment(row)
    board = system.acknowledgments(
        assignment.target,
        assignment.assigned_at_ms,
        now_ms() if at_ms is None else at_ms,
    )
    return [
        {
            "hospital_id": ack.hospital.entity_id,
            "name": ack.hospital.name,
            "address": ack.hospital.address,
            "status": ack.status.value,
            "eta_minutes": ack.eta_minutes,
            "updated_at_ms": ack.updated_at_ms,
        }
        for ack in board
    ]


@app.get("/audit-logs")
def audit_logs():
    with get_conn() as conn:
        rows = conn.execute("SELECT * FROM audit_logs ORDER BY id DESC LIMIT 300").fetchall()
    return [dict(r) for r in rows]
