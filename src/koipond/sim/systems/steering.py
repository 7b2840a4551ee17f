from __future__ import annotations

import math
from typing import List, Optional

from pygame.math import Vector2

from ..core.agent import Agent
from ..core.config import BehaviorConfig
from ..utils.math2d import ZERO, _affine_transform, _safe_normalize_xy

_DEFAULTS = BehaviorConfig()


def _neighbor_geometry(
    agent: Agent,
    neighbors: List[Agent],
    neighbor_offsets: Optional[List[Vector2]],
    neighbor_dist_sq: Optional[List[float]],
) -> tuple[List[Vector2], List[float]]:
    offsets = neighbor_offsets
    if offsets is None or len(offsets) != len(neighbors):
        offsets = [other.position - agent.position for other in neighbors]
    dist_sq_list = neighbor_dist_sq
    if dist_sq_list is None or len(dist_sq_list) != len(offsets):
        dist_sq_list = [offset.length_squared() for offset in offsets]
    return offsets, dist_sq_list


def _steer_towards(agent: Agent, desired_x: float, desired_y: float, speed: float) -> Vector2:
    direction = _safe_normalize_xy(desired_x, desired_y)
    return Vector2(direction.x * speed - agent.velocity.x, direction.y * speed - agent.velocity.y)


def seek(agent: Agent, target: Vector2, threshold: float = _DEFAULTS.seek_threshold) -> Vector2:
    """Steer at full speed towards ``target``; no-op once within ``threshold``."""
    dx = target.x - agent.position.x
    dy = target.y - agent.position.y
    if dx * dx + dy * dy <= threshold * threshold:
        return ZERO
    return _steer_towards(agent, dx, dy, agent.max_speed)


def flee(agent: Agent, target: Vector2, safety_range: float = _DEFAULTS.flee_range) -> Vector2:
    """Steer at full speed away from ``target`` while it is inside ``safety_range``."""
    dx = agent.position.x - target.x
    dy = agent.position.y - target.y
    dist_sq = dx * dx + dy * dy
    if dist_sq >= safety_range * safety_range or dist_sq < 1e-12:
        return ZERO
    return _steer_towards(agent, dx, dy, agent.max_speed)


def arrive(agent: Agent, target: Vector2, slowing_radius: float = _DEFAULTS.slowing_radius) -> Vector2:
    """Seek ``target`` but ramp the desired speed down linearly inside ``slowing_radius``."""
    dx = target.x - agent.position.x
    dy = target.y - agent.position.y
    distance = math.sqrt(dx * dx + dy * dy)
    speed = agent.max_speed
    if slowing_radius > 0.0 and distance < slowing_radius:
        speed = _affine_transform(distance, 0.0, slowing_radius, 0.0, agent.max_speed)
    return _steer_towards(agent, dx, dy, speed)


def wander(
    agent: Agent,
    rng_value: float,
    circle_radius: float = _DEFAULTS.wander_circle_radius,
    radian_delta: float = _DEFAULTS.wander_radian_delta,
) -> Vector2:
    """
    Jitter the agent's persisted wander angle and seek a point on a circle projected ahead of it.

    ``rng_value`` is a sample in [0, 1); the angle moves by at most ``radian_delta / 2`` either way.
    The circle sits at ``position + velocity * circle_radius`` and collapses onto the agent when
    the velocity is zero or NaN.
    """
    velocity = agent.velocity
    center_x = agent.position.x
    center_y = agent.position.y
    if math.isfinite(velocity.x) and math.isfinite(velocity.y) and (velocity.x != 0.0 or velocity.y != 0.0):
        center_x += velocity.x * circle_radius
        center_y += velocity.y * circle_radius

    agent.wander_angle += rng_value * radian_delta - radian_delta * 0.5

    target = Vector2(
        center_x + circle_radius * math.cos(agent.wander_angle),
        center_y + circle_radius * math.sin(agent.wander_angle),
    )
    if not (math.isfinite(agent.velocity.x) and math.isfinite(agent.velocity.y)):
        # NaN velocity: return the raw desired velocity.
        direction = _safe_normalize_xy(target.x - agent.position.x, target.y - agent.position.y)
        return Vector2(direction.x * agent.max_speed, direction.y * agent.max_speed)
    return seek(agent, target, threshold=1.0)


def separate(
    agent: Agent,
    neighbors: List[Agent],
    neighbor_offsets: Optional[List[Vector2]] = None,
    neighbor_dist_sq: Optional[List[float]] = None,
    separation_range: float = _DEFAULTS.separation_range,
) -> Vector2:
    if not neighbors:
        return ZERO
    offsets, dist_sq_list = _neighbor_geometry(agent, neighbors, neighbor_offsets, neighbor_dist_sq)
    range_sq = separation_range * separation_range
    accum_x = 0.0
    accum_y = 0.0
    count = 0
    for offset, dist_sq in zip(offsets, dist_sq_list):
        if dist_sq >= range_sq:
            continue
        count += 1
        # Coincident agents have no direction to push along.
        if dist_sq <= 1e-12:
            continue
        # normalize(-offset) / distance == -offset / distance^2
        inv_dist_sq = 1.0 / dist_sq
        accum_x -= offset.x * inv_dist_sq
        accum_y -= offset.y * inv_dist_sq
    if count == 0:
        return ZERO
    inv = 1.0 / count
    direction = _safe_normalize_xy(accum_x * inv, accum_y * inv)
    # Pushes that cancel out give no force, not braking.
    if direction.x == 0.0 and direction.y == 0.0:
        return ZERO
    return Vector2(
        direction.x * agent.max_speed - agent.velocity.x,
        direction.y * agent.max_speed - agent.velocity.y,
    )


def align(
    agent: Agent,
    neighbors: List[Agent],
    neighbor_offsets: Optional[List[Vector2]] = None,
    neighbor_dist_sq: Optional[List[float]] = None,
    align_range: float = _DEFAULTS.align_range,
) -> Vector2:
    if not neighbors:
        return ZERO
    _offsets, dist_sq_list = _neighbor_geometry(agent, neighbors, neighbor_offsets, neighbor_dist_sq)
    range_sq = align_range * align_range
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for other, dist_sq in zip(neighbors, dist_sq_list):
        if dist_sq >= range_sq:
            continue
        sum_x += other.velocity.x
        sum_y += other.velocity.y
        count += 1
    if count == 0:
        return ZERO
    inv = 1.0 / count
    avg_x = sum_x * inv
    avg_y = sum_y * inv
    if avg_x * avg_x + avg_y * avg_y < 1e-10:
        return ZERO
    return _steer_towards(agent, avg_x, avg_y, agent.max_speed)


def cohere(
    agent: Agent,
    neighbors: List[Agent],
    neighbor_offsets: Optional[List[Vector2]] = None,
    neighbor_dist_sq: Optional[List[float]] = None,
    cohesion_range: float = _DEFAULTS.cohesion_range,
    threshold: float = _DEFAULTS.seek_threshold,
) -> Vector2:
    if not neighbors:
        return ZERO
    _offsets, dist_sq_list = _neighbor_geometry(agent, neighbors, neighbor_offsets, neighbor_dist_sq)
    range_sq = cohesion_range * cohesion_range
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for other, dist_sq in zip(neighbors, dist_sq_list):
        if dist_sq >= range_sq:
            continue
        sum_x += other.position.x
        sum_y += other.position.y
        count += 1
    if count == 0:
        return ZERO
    inv = 1.0 / count
    return seek(agent, Vector2(sum_x * inv, sum_y * inv), threshold=threshold)
