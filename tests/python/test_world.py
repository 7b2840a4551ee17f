from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from koipond.sim.core.config import (
    BehaviorConfig,
    BoundsConfig,
    FlockConfig,
    SimulationConfig,
    WalkerConfig,
    WaypointConfig,
)
from koipond.sim.core.world import World

_STILL = dict(wander=0.0, separation=0.0, alignment=0.0, cohesion=0.0)


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    for tick in range(steps):
        world.step(tick)
    return [(agent.position.x, agent.position.y, agent.velocity.x, agent.velocity.y) for agent in world.agents]


def test_deterministic_steps():
    result_a = run_steps(SimulationConfig(seed=1234, flock=FlockConfig(count=40)), 30)
    result_b = run_steps(SimulationConfig(seed=1234, flock=FlockConfig(count=40)), 30)
    assert result_a == result_b


def test_reset_restores_the_initial_flock():
    world = World(SimulationConfig(seed=5, flock=FlockConfig(count=10)))
    initial = [(agent.id, agent.position.x, agent.position.y) for agent in world.agents]
    for tick in range(10):
        world.step(tick)
    world.set_target(1.0, 2.0)
    world.reset()
    assert [(agent.id, agent.position.x, agent.position.y) for agent in world.agents] == initial
    assert world.target is None
    assert world.metrics is None


def test_snapshot_contains_metadata_and_agent_signals():
    config = SimulationConfig(
        seed=7,
        time_step=0.5,
        flock=FlockConfig(count=3),
        bounds=BoundsConfig(width=640.0, height=480.0, mode="bounce"),
    )
    world = World(config)
    world.step(0)
    world.set_target(100.0, 50.0)
    snapshot = world.snapshot(1)

    assert snapshot.tick == 1
    assert snapshot.world.width == approx(640.0)
    assert snapshot.world.height == approx(480.0)
    assert snapshot.world.bounds_mode == "bounce"
    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.metrics.agents == 3
    assert snapshot.target == {"x": 100.0, "y": 50.0}
    assert snapshot.walker is None

    payload = snapshot.agents[0]
    for key in ["id", "x", "y", "vx", "vy", "speed", "heading", "bearing"]:
        assert key in payload
    assert payload["heading"] == approx(world.agents[0].heading)


def test_target_drives_seek_and_clearing_it_stops_steering():
    config = SimulationConfig(
        flock=FlockConfig(count=1),
        behaviors=BehaviorConfig(seek=1.0, **_STILL),
        bounds=BoundsConfig(mode="none"),
    )
    world = World(config)
    agent = world.agents[0]
    agent.position = Vector2(100.0, 100.0)
    agent.velocity = Vector2()

    world.set_target(400.0, 100.0)
    for tick in range(50):
        world.step(tick)
    assert agent.position.x > 100.0
    assert agent.position.y == approx(100.0)
    assert agent.velocity.x > 0.0

    world.clear_target()
    velocity = agent.velocity.copy()
    metrics = world.step(50)
    assert agent.last_force == 0.0
    assert agent.velocity == velocity
    assert metrics.average_force == 0.0


def test_add_waypoint_requires_an_enabled_walker():
    world = World(SimulationConfig(flock=FlockConfig(count=0)))
    assert world.add_waypoint(10.0, 10.0) is None
    assert world.walker is None


def test_walker_moves_and_reports_in_metrics_and_snapshot():
    config = SimulationConfig(
        flock=FlockConfig(count=0),
        walker=WalkerConfig(
            enabled=True,
            start=(20.0, 20.0),
            speed=100.0,
            mode="one_shot",
            waypoints=[WaypointConfig(x=220.0, y=20.0, label="far")],
        ),
    )
    world = World(config)
    added = world.add_waypoint(220.0, 220.0)
    assert added is not None

    metrics = world.step(0, dt=0.5)
    assert world.walker.position.x == approx(70.0)
    assert metrics.waypoints == 2
    assert metrics.arrivals == 0

    walker = world.snapshot(1).walker
    assert walker["mode"] == "one_shot"
    assert [point["label"] for point in walker["waypoints"]] == ["far", "2"]

    world.step(1, dt=10.0)
    assert world.walker.arrivals == 1
    assert world.snapshot(2).walker["waypoints"] == [{"x": 220.0, "y": 220.0, "label": "1"}]
