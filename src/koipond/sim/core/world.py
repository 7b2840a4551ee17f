from __future__ import annotations

import logging
from collections import deque
from time import perf_counter
from typing import Any, Dict, List, Optional

from pygame.math import Vector2

from .agent import Agent
from .config import SimulationConfig
from .flock import Flock
from .rng import DeterministicRng
from .waypoint import Waypoint, WaypointWalker
from ..systems import metrics as metrics_system
from ..systems import motion, waypoints
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld

logger = logging.getLogger(__name__)


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._flock = Flock(cell_size=config.behaviors.neighbor_radius())
        self._walker: WaypointWalker | None = None
        self._target: Vector2 | None = None
        self._metrics: TickMetrics | None = None
        self._next_id = 0
        self._bootstrap()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def agents(self) -> List[Agent]:
        return self._flock.agents

    @property
    def flock(self) -> Flock:
        return self._flock

    @property
    def walker(self) -> WaypointWalker | None:
        return self._walker

    @property
    def target(self) -> Vector2 | None:
        return self._target

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._flock.clear()
        self._rng.reset()
        self._walker = None
        self._target = None
        self._metrics = None
        self._next_id = 0
        self._bootstrap()

    def set_target(self, x: float, y: float) -> None:
        if self._target is None:
            self._target = Vector2(x, y)
        else:
            self._target.update(x, y)

    def clear_target(self) -> None:
        self._target = None

    def add_waypoint(self, x: float, y: float, label: Optional[str] = None) -> Waypoint | None:
        if self._walker is None:
            logger.info("Ignoring waypoint (%.1f, %.1f): walker is disabled", x, y)
            return None
        return waypoints.add_waypoint(self._walker, x, y, label)

    def step(self, tick: int, dt: float | None = None) -> TickMetrics:
        start = perf_counter()
        config = self._config
        elapsed = config.time_step if dt is None else dt

        neighbor_checks = self._flock.step(config.behaviors, config.bounds, self._rng, self._target)

        if self._walker is not None:
            reached = waypoints.update_walker(self._walker, elapsed)
            if reached is not None:
                logger.debug(
                    "Walker reached waypoint (%.1f, %.1f) at tick %d, %d remaining",
                    reached.position.x,
                    reached.position.y,
                    tick,
                    len(self._walker.waypoints),
                )

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(tick, self._flock, neighbor_checks, self._walker, elapsed_ms)
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        config = self._config
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._flock, 0, self._walker, 0.0)
        metadata = SnapshotMetadata(
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            seed=config.seed,
            config_version=config.config_version,
        )
        target = None if self._target is None else {"x": self._target.x, "y": self._target.y}
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._flock],
            world=SnapshotWorld(width=config.bounds.width, height=config.bounds.height, bounds_mode=config.bounds.mode),
            metadata=metadata,
            target=target,
            walker=self._walker_snapshot(),
        )

    def _bootstrap(self) -> None:
        config = self._config
        vehicle = config.vehicle
        bounds = config.bounds
        for _ in range(config.flock.count):
            position = Vector2(
                self._rng.next_range(0.0, bounds.width),
                self._rng.next_range(0.0, bounds.height),
            )
            velocity = Vector2(
                self._rng.next_range(-vehicle.max_speed, vehicle.max_speed),
                self._rng.next_range(-vehicle.max_speed, vehicle.max_speed),
            )
            agent = Agent(
                id=self._next_id,
                position=position,
                velocity=velocity,
                max_speed=vehicle.max_speed,
                max_force=vehicle.max_force,
            )
            motion.update_heading(agent)
            self._flock.add(agent)
            self._next_id += 1

        walker_config = config.walker
        if walker_config.enabled:
            self._walker = WaypointWalker(
                position=Vector2(walker_config.start),
                speed=walker_config.speed,
                mode=walker_config.mode,
                arrival=walker_config.arrival,
                waypoints=deque(
                    Waypoint(position=Vector2(point.x, point.y), label=point.label)
                    for point in walker_config.waypoints
                ),
            )
        logger.info(
            "Spawned %d agents (seed=%d, bounds=%s)%s",
            len(self._flock),
            config.seed,
            bounds.mode,
            "" if self._walker is None else f" and a {self._walker.mode} walker",
        )

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, float]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "heading": agent.heading,
            "bearing": motion.bearing(agent),
        }

    def _walker_snapshot(self) -> Dict[str, Any] | None:
        walker = self._walker
        if walker is None:
            return None
        labels = waypoints.waypoint_labels(walker)
        return {
            "x": walker.position.x,
            "y": walker.position.y,
            "speed": walker.speed,
            "mode": walker.mode,
            "arrivals": walker.arrivals,
            "waypoints": [
                {"x": waypoint.position.x, "y": waypoint.position.y, "label": label}
                for waypoint, label in zip(walker.waypoints, labels)
            ],
        }
