from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Tuple

from pygame.math import Vector2

from .agent import Agent
from .config import BehaviorConfig, BoundsConfig
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from ..systems import motion, steering


class Flock:
    """
    Arena of steering agents addressed by index.

    Each tick runs in two passes: every agent accumulates forces from the same read-only
    view of its neighbours, then every agent integrates and is bounded.
    """

    def __init__(self, agents: Iterable[Agent] = (), cell_size: float = 160.0) -> None:
        self._agents: List[Agent] = list(agents)
        self._grid = SpatialGrid(max(1.0, cell_size))
        self._neighbor_agents: List[Agent] = []
        self._neighbor_offsets: List[Vector2] = []
        self._neighbor_dist_sq: List[float] = []

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents)

    def __getitem__(self, index: int) -> Agent:
        return self._agents[index]

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    def add(self, agent: Agent) -> int:
        self._agents.append(agent)
        return len(self._agents) - 1

    def clear(self) -> None:
        self._agents.clear()
        self._grid.clear()

    def rebuild_grid(self) -> None:
        self._grid.clear()
        for agent in self._agents:
            self._grid.insert(agent)

    def neighbors(self, index: int, radius: float) -> List[Tuple[Agent, Vector2, float]]:
        """Return ``(agent, offset, dist_sq)`` for every other agent strictly within ``radius``."""
        agent = self._agents[index]
        self.rebuild_grid()
        self._collect(agent, radius)
        return [
            (other, offset.copy(), dist_sq)
            for other, offset, dist_sq in zip(self._neighbor_agents, self._neighbor_offsets, self._neighbor_dist_sq)
        ]

    def step(
        self,
        behaviors: BehaviorConfig,
        bounds: BoundsConfig,
        rng: DeterministicRng,
        target: Optional[Vector2] = None,
    ) -> int:
        radius = behaviors.neighbor_radius()
        flocking = radius > 0.0 and len(self._agents) > 1
        if flocking:
            self.rebuild_grid()
            cell_offsets = self._grid.build_neighbor_cell_offsets(radius)
        neighbor_checks = 0

        for agent in self._agents:
            if flocking:
                self._grid.collect_neighbors(
                    agent.position,
                    cell_offsets,
                    radius * radius,
                    self._neighbor_agents,
                    self._neighbor_offsets,
                    self._neighbor_dist_sq,
                    exclude_id=agent.id,
                )
                neighbor_checks += len(self._neighbor_agents)
                self._apply_flocking(agent, behaviors)
            if behaviors.wander > 0.0:
                force = steering.wander(
                    agent,
                    rng.next_float(),
                    circle_radius=behaviors.wander_circle_radius,
                    radian_delta=behaviors.wander_radian_delta,
                )
                motion.apply_force(agent, force, behaviors.wander)
            if target is not None:
                self._apply_targeting(agent, target, behaviors)

        for agent in self._agents:
            motion.integrate(agent)
            motion.apply_bounds(agent, bounds)
        return neighbor_checks

    def _collect(self, agent: Agent, radius: float) -> None:
        self._grid.collect_neighbors(
            agent.position,
            self._grid.build_neighbor_cell_offsets(radius),
            radius * radius,
            self._neighbor_agents,
            self._neighbor_offsets,
            self._neighbor_dist_sq,
            exclude_id=agent.id,
        )

    def _apply_flocking(self, agent: Agent, behaviors: BehaviorConfig) -> None:
        neighbors = self._neighbor_agents
        offsets = self._neighbor_offsets
        dist_sq = self._neighbor_dist_sq
        if behaviors.separation > 0.0:
            force = steering.separate(agent, neighbors, offsets, dist_sq, behaviors.separation_range)
            motion.apply_force(agent, force, behaviors.separation)
        if behaviors.alignment > 0.0:
            force = steering.align(agent, neighbors, offsets, dist_sq, behaviors.align_range)
            motion.apply_force(agent, force, behaviors.alignment)
        if behaviors.cohesion > 0.0:
            force = steering.cohere(
                agent, neighbors, offsets, dist_sq, behaviors.cohesion_range, behaviors.seek_threshold
            )
            motion.apply_force(agent, force, behaviors.cohesion)

    @staticmethod
    def _apply_targeting(agent: Agent, target: Vector2, behaviors: BehaviorConfig) -> None:
        if behaviors.seek > 0.0:
            motion.apply_force(agent, steering.seek(agent, target, behaviors.seek_threshold), behaviors.seek)
        if behaviors.flee > 0.0:
            motion.apply_force(agent, steering.flee(agent, target, behaviors.flee_range), behaviors.flee)
        if behaviors.arrive > 0.0:
            motion.apply_force(agent, steering.arrive(agent, target, behaviors.slowing_radius), behaviors.arrive)
