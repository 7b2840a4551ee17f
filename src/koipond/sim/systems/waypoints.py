from __future__ import annotations

import math
from typing import Optional

from pygame.math import Vector2

from ..core.waypoint import Waypoint, WaypointWalker

FIXED_ARRIVAL_DISTANCE = 1.0
PROPORTIONAL_ARRIVAL_FACTOR = 0.01


def arrival_threshold(walker: WaypointWalker) -> float:
    if walker.arrival == "proportional":
        return walker.speed * PROPORTIONAL_ARRIVAL_FACTOR
    return FIXED_ARRIVAL_DISTANCE


def add_waypoint(walker: WaypointWalker, x: float, y: float, label: Optional[str] = None) -> Waypoint:
    waypoint = Waypoint(position=Vector2(x, y), label=label)
    walker.waypoints.append(waypoint)
    return waypoint


def move_towards_next_waypoint(walker: WaypointWalker, dt: float) -> None:
    destination = walker.destination
    if destination is None or dt <= 0.0:
        return
    dx = destination.position.x - walker.position.x
    dy = destination.position.y - walker.position.y
    distance = math.sqrt(dx * dx + dy * dy)
    if distance <= 1e-12:
        return
    step = walker.speed * dt
    if step >= distance:
        walker.position.update(destination.position.x, destination.position.y)
        return
    scale = step / distance
    walker.position.update(walker.position.x + dx * scale, walker.position.y + dy * scale)


def walker_at_waypoint(walker: WaypointWalker) -> bool:
    destination = walker.destination
    if destination is None:
        return False
    return walker.position.distance_to(destination.position) < arrival_threshold(walker)


def advance(walker: WaypointWalker) -> Optional[Waypoint]:
    """Consume or cycle the head waypoint; returns the waypoint that was reached."""
    if not walker.waypoints:
        return None
    if walker.mode == "patrol":
        reached = walker.waypoints[0]
        walker.waypoints.rotate(-1)
    else:
        reached = walker.waypoints.popleft()
    walker.arrivals += 1
    return reached


def update_walker(walker: WaypointWalker, dt: float) -> Optional[Waypoint]:
    move_towards_next_waypoint(walker, dt)
    if walker_at_waypoint(walker):
        return advance(walker)
    return None


def waypoint_labels(walker: WaypointWalker) -> list[str]:
    """Display labels, falling back to the 1-based queue position."""
    return [
        waypoint.label if waypoint.label is not None else str(index + 1)
        for index, waypoint in enumerate(walker.waypoints)
    ]
