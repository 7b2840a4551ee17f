from __future__ import annotations

import math

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.config import BoundsConfig
from ..utils.math2d import _bearing_to_target, _clamp_length_xy, _heading_from_velocity


def apply_force(agent: Agent, force: Vector2, weight: float = 1.0) -> Vector2:
    """Weight ``force``, clamp it to the agent's max force and add it to the acceleration."""
    fx = force.x * weight
    fy = force.y * weight
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return Vector2()
    clamped = _clamp_length_xy(fx, fy, agent.max_force)
    agent.acceleration.update(agent.acceleration.x + clamped.x, agent.acceleration.y + clamped.y)
    return clamped


def integrate(agent: Agent) -> None:
    accel = agent.acceleration
    agent.last_force = accel.length()
    velocity = _clamp_length_xy(agent.velocity.x + accel.x, agent.velocity.y + accel.y, agent.max_speed)
    agent.velocity.update(velocity.x, velocity.y)
    agent.position.update(agent.position.x + velocity.x, agent.position.y + velocity.y)
    accel.update(0.0, 0.0)
    update_heading(agent)


def update_heading(agent: Agent) -> None:
    if agent.velocity.length_squared() > 1e-8:
        agent.heading = _heading_from_velocity(agent.velocity)


def bearing(agent: Agent) -> float:
    return _bearing_to_target(agent.position, agent.position + agent.velocity)


def apply_bounds(agent: Agent, bounds: BoundsConfig) -> None:
    if bounds.mode == "wrap":
        x, y = _wrap(agent.position.x, agent.position.y, bounds)
        agent.position.update(x, y)
    elif bounds.mode == "bounce":
        x, y, vx, vy = _reflect(agent.position.x, agent.position.y, agent.velocity.x, agent.velocity.y, bounds)
        agent.position.update(x, y)
        agent.velocity.update(vx, vy)


def _wrap(x: float, y: float, bounds: BoundsConfig) -> tuple[float, float]:
    margin = bounds.margin
    x_min = -margin
    x_max = bounds.width + margin
    y_min = -margin
    y_max = bounds.height + margin
    if x < x_min:
        x = x_max
    elif x > x_max:
        x = x_min
    if y < y_min:
        y = y_max
    elif y > y_max:
        y = y_min
    return x, y


def _reflect(x: float, y: float, vx: float, vy: float, bounds: BoundsConfig) -> tuple[float, float, float, float]:
    low_x = bounds.margin
    high_x = bounds.width - bounds.margin
    low_y = bounds.margin
    high_y = bounds.height - bounds.margin
    if high_x <= low_x or high_y <= low_y or not (math.isfinite(x) and math.isfinite(y)):
        return x, y, vx, vy
    while True:
        crossed = False
        if x < low_x:
            x = 2 * low_x - x
            vx = -vx
            crossed = True
        if x > high_x:
            x = 2 * high_x - x
            vx = -vx
            crossed = True
        if y < low_y:
            y = 2 * low_y - y
            vy = -vy
            crossed = True
        if y > high_y:
            y = 2 * high_y - y
            vy = -vy
            crossed = True
        if not crossed:
            break

    return x, y, vx, vy
