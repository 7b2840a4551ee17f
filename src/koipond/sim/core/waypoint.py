from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from pygame.math import Vector2


@dataclass(slots=True)
class Waypoint:
    position: Vector2
    label: Optional[str] = None


@dataclass(slots=True)
class WaypointWalker:
    """
    Actor that travels through an ordered waypoint queue at constant speed.

    The head of ``waypoints`` is always the current destination. In ``one_shot`` mode
    reached waypoints are dropped; in ``patrol`` mode they rotate to the back.
    """

    position: Vector2
    speed: float = 100.0
    mode: str = "patrol"
    arrival: str = "fixed"
    waypoints: Deque[Waypoint] = field(default_factory=deque)
    arrivals: int = 0

    @property
    def destination(self) -> Optional[Waypoint]:
        return self.waypoints[0] if self.waypoints else None
