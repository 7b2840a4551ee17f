from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

BOUNDS_MODES = ("wrap", "bounce", "none")
WALKER_MODES = ("one_shot", "patrol")
ARRIVAL_RULES = ("fixed", "proportional")


@dataclass
class VehicleConfig:
    max_speed: float = 2.0
    max_force: float = 0.03


@dataclass
class BehaviorConfig:
    # Target-driven weights only apply while an input target is set.
    seek: float = 0.0
    flee: float = 0.0
    arrive: float = 0.0
    wander: float = 1.0
    separation: float = 1.5
    alignment: float = 1.0
    cohesion: float = 1.0
    separation_range: float = 80.0
    align_range: float = 160.0
    cohesion_range: float = 160.0
    flee_range: float = 200.0
    slowing_radius: float = 100.0
    seek_threshold: float = 1.0
    wander_circle_radius: float = 100.0
    wander_radian_delta: float = math.radians(15.0)

    def neighbor_radius(self) -> float:
        radii = []
        if self.separation > 0.0:
            radii.append(self.separation_range)
        if self.alignment > 0.0:
            radii.append(self.align_range)
        if self.cohesion > 0.0:
            radii.append(self.cohesion_range)
        return max(radii) if radii else 0.0


@dataclass
class FlockConfig:
    count: int = 200


@dataclass
class BoundsConfig:
    width: float = 1920.0
    height: float = 1200.0
    margin: float = 20.0
    mode: str = "wrap"


@dataclass
class WaypointConfig:
    x: float = 0.0
    y: float = 0.0
    label: Optional[str] = None


@dataclass
class WalkerConfig:
    enabled: bool = False
    start: tuple[float, float] = (20.0, 20.0)
    speed: float = 100.0
    mode: str = "patrol"
    arrival: str = "fixed"
    waypoints: List[WaypointConfig] = field(default_factory=list)


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    seed: int = 42
    config_version: str = "v1"
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)
    behaviors: BehaviorConfig = field(default_factory=BehaviorConfig)
    flock: FlockConfig = field(default_factory=FlockConfig)
    bounds: BoundsConfig = field(default_factory=BoundsConfig)
    walker: WalkerConfig = field(default_factory=WalkerConfig)

    def __post_init__(self) -> None:
        validate_config(self)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def validate_config(config: SimulationConfig) -> None:
    if config.bounds.mode not in BOUNDS_MODES:
        raise ValueError(f"Unknown bounds mode: {config.bounds.mode!r} (expected one of {BOUNDS_MODES})")
    if config.walker.mode not in WALKER_MODES:
        raise ValueError(f"Unknown walker mode: {config.walker.mode!r} (expected one of {WALKER_MODES})")
    if config.walker.arrival not in ARRIVAL_RULES:
        raise ValueError(f"Unknown arrival rule: {config.walker.arrival!r} (expected one of {ARRIVAL_RULES})")
    if config.time_step <= 0.0:
        raise ValueError(f"time_step must be positive, got {config.time_step}")


def load_config(raw: dict) -> SimulationConfig:
    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    vehicle = VehicleConfig(**raw.get("vehicle", {}))
    behaviors_raw = dict(raw.get("behaviors", {}))
    # YAML presets are easier to read in degrees.
    if "wander_degree_delta" in behaviors_raw:
        behaviors_raw["wander_radian_delta"] = math.radians(float(behaviors_raw.pop("wander_degree_delta")))
    behaviors = BehaviorConfig(**behaviors_raw)
    flock = FlockConfig(**raw.get("flock", {}))
    bounds = BoundsConfig(**raw.get("bounds", {}))
    walker_raw = raw.get("walker", {})
    waypoints = [WaypointConfig(**point) for point in walker_raw.get("waypoints", [])]
    walker_values = {k: v for k, v in walker_raw.items() if k not in {"waypoints", "start"}}
    walker = WalkerConfig(
        start=_pair(walker_raw.get("start"), WalkerConfig().start),
        waypoints=waypoints,
        **walker_values,
    )
    sim_values = {
        k: v for k, v in raw.items() if k not in {"vehicle", "behaviors", "flock", "bounds", "walker"}
    }
    return SimulationConfig(
        vehicle=vehicle,
        behaviors=behaviors,
        flock=flock,
        bounds=bounds,
        walker=walker,
        **sim_values,
    )
