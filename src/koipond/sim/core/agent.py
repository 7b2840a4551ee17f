from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    max_speed: float = 2.0
    max_force: float = 0.03
    acceleration: Vector2 = field(default_factory=Vector2)
    wander_angle: float = 0.0
    heading: float = 0.0
    last_force: float = 0.0
