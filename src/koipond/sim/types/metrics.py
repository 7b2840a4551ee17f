from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    agents: int
    average_speed: float
    max_speed: float
    average_force: float
    neighbor_checks: int
    waypoints: int
    arrivals: int
    tick_duration_ms: float = 0.0
