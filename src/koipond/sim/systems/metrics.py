from __future__ import annotations

from typing import Iterable, Optional

from ..core.agent import Agent
from ..core.waypoint import WaypointWalker
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    agents: Iterable[Agent],
    neighbor_checks: int,
    walker: Optional[WaypointWalker],
    duration_ms: float,
) -> TickMetrics:
    count = 0
    speed_sum = 0.0
    max_speed = 0.0
    force_sum = 0.0
    for agent in agents:
        speed = agent.velocity.length()
        count += 1
        speed_sum += speed
        force_sum += agent.last_force
        if speed > max_speed:
            max_speed = speed
    return TickMetrics(
        tick=tick,
        agents=count,
        average_speed=0.0 if count == 0 else speed_sum / count,
        max_speed=max_speed,
        average_force=0.0 if count == 0 else force_sum / count,
        neighbor_checks=neighbor_checks,
        waypoints=0 if walker is None else len(walker.waypoints),
        arrivals=0 if walker is None else walker.arrivals,
        tick_duration_ms=duration_ms,
    )
