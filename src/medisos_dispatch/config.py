from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DispatchConfig:
    """Tunables shared by the ranker, classifier and movement simulator."""

    average_speed_kmh: float = 30.0
    # roughly 110 m of latitude per tick
    step_degrees: float = 0.001
    settle_window_ms: int = 5000
    tick_interval_ms: int = 2000

    arrived_eta_minutes: int = 1
    arrived_distance_km: float = 0.1
    arriving_eta_minutes: int = 3
    arriving_distance_km: float = 0.5

    search_radius_km: float = 10.0

    notified_hospitals: int = 3
    acknowledge_after_ms: int = 2000
    acknowledge_stagger_ms: int = 1500
    hospital_dispatching_after_ms: int = 5000
    hospital_en_route_after_ms: int = 8000

    # progress bar is full once ETA drops below this horizon
    progress_horizon_minutes: float = 15.0


DEFAULT_CONFIG = DispatchConfig()
