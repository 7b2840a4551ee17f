from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from koipond.sim.core.agent import Agent
from koipond.sim.core.config import BoundsConfig
from koipond.sim.core.rng import DeterministicRng
from koipond.sim.systems import motion, steering


def _agent(x: float = 0.0, y: float = 0.0, vx: float = 0.0, vy: float = 0.0, **kwargs) -> Agent:
    return Agent(id=0, position=Vector2(x, y), velocity=Vector2(vx, vy), **kwargs)


def test_apply_force_clamps_to_max_force_and_accumulates():
    agent = _agent(max_force=0.03)
    applied = motion.apply_force(agent, Vector2(10.0, 0.0))
    assert applied.length() == approx(0.03)
    motion.apply_force(agent, Vector2(0.0, 0.01))
    assert agent.acceleration.x == approx(0.03)
    assert agent.acceleration.y == approx(0.01)


def test_apply_force_weights_before_clamping():
    agent = _agent(max_force=1.0)
    applied = motion.apply_force(agent, Vector2(0.2, 0.0), weight=1.5)
    assert applied.x == approx(0.3)


def test_apply_force_drops_non_finite_forces():
    agent = _agent()
    motion.apply_force(agent, Vector2(float("nan"), 1.0))
    motion.apply_force(agent, Vector2(float("inf"), 0.0))
    assert agent.acceleration == Vector2()


def test_integrate_clamps_speed_moves_and_resets_acceleration():
    agent = _agent(vx=1.9, max_speed=2.0, max_force=5.0)
    motion.apply_force(agent, Vector2(3.0, 4.0))
    motion.integrate(agent)
    assert agent.velocity.length() == approx(2.0)
    assert agent.position == agent.velocity
    assert agent.acceleration == Vector2()
    assert agent.last_force == approx(5.0)
    assert agent.heading == approx(math.atan2(agent.velocity.y, agent.velocity.x))


def test_heading_persists_while_still():
    agent = _agent()
    agent.heading = 1.23
    motion.integrate(agent)
    assert agent.heading == approx(1.23)


def test_random_forces_never_break_speed_or_force_limits():
    rng = DeterministicRng(11)
    agent = _agent(vx=1.0, max_speed=2.0, max_force=0.03)
    for _ in range(500):
        force = Vector2(rng.next_range(-50.0, 50.0), rng.next_range(-50.0, 50.0))
        applied = motion.apply_force(agent, force, weight=rng.next_range(0.0, 3.0))
        assert applied.length() <= agent.max_force + 1e-12
        motion.integrate(agent)
        assert agent.velocity.length() <= agent.max_speed + 1e-9


def test_seek_from_rest_closes_distance_until_arrival():
    agent = _agent(max_speed=2.0, max_force=0.03)
    target = Vector2(500.0, 0.0)
    distances = [agent.position.distance_to(target)]
    for _ in range(400):
        motion.apply_force(agent, steering.seek(agent, target))
        motion.integrate(agent)
        distances.append(agent.position.distance_to(target))

    arrived = next(i for i, distance in enumerate(distances) if distance < 5.0)
    approach = distances[: arrived + 1]
    assert all(later <= earlier for earlier, later in zip(approach, approach[1:]))


def test_arrive_decelerates_inside_slowing_radius():
    agent = _agent(x=-300.0, vx=2.0, max_speed=2.0, max_force=0.03)
    target = Vector2(0.0, 0.0)
    checked = 0
    for _ in range(600):
        distance_before = agent.position.distance_to(target)
        motion.apply_force(agent, steering.arrive(agent, target, slowing_radius=100.0))
        motion.integrate(agent)
        if distance_before < 100.0:
            assert agent.velocity.length() < agent.max_speed
            checked += 1
    assert checked > 0
    assert agent.position.distance_to(target) < 100.0


def test_wrap_moves_agent_to_opposite_edge():
    bounds = BoundsConfig(width=100.0, height=50.0, margin=20.0, mode="wrap")
    agent = _agent(x=-21.0, y=71.0)
    motion.apply_bounds(agent, bounds)
    assert agent.position == Vector2(120.0, -20.0)

    agent = _agent(x=121.0, y=-21.0)
    motion.apply_bounds(agent, bounds)
    assert agent.position == Vector2(-20.0, 70.0)

    inside = _agent(x=-19.0, y=69.0)
    motion.apply_bounds(inside, bounds)
    assert inside.position == Vector2(-19.0, 69.0)


def test_bounce_reflects_position_and_velocity_at_margin():
    bounds = BoundsConfig(width=100.0, height=100.0, margin=10.0, mode="bounce")
    agent = _agent(x=8.0, y=95.0, vx=-2.0, vy=1.5)
    motion.apply_bounds(agent, bounds)
    assert agent.position.x == approx(12.0)
    assert agent.position.y == approx(85.0)
    assert agent.velocity == Vector2(2.0, -1.5)


def test_unbounded_mode_leaves_agent_alone():
    bounds = BoundsConfig(mode="none")
    agent = _agent(x=-5000.0, y=5000.0)
    motion.apply_bounds(agent, bounds)
    assert agent.position == Vector2(-5000.0, 5000.0)


@pytest.mark.parametrize("vx, vy, expected", [(1.0, 0.0, math.pi / 2), (0.0, -1.0, 0.0), (-1.0, 0.0, 3 * math.pi / 2)])
def test_bearing_follows_velocity(vx, vy, expected):
    assert motion.bearing(_agent(vx=vx, vy=vy)) == approx(expected)
