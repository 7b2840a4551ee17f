from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10 or not math.isfinite(magnitude_sq):
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _clamp_length_xy(x: float, y: float, max_length: float) -> Vector2:
    if max_length <= 0:
        return Vector2()
    magnitude_sq = x * x + y * y
    if magnitude_sq <= max_length * max_length:
        return Vector2(x, y)
    if magnitude_sq == 0:
        return Vector2()
    inv = max_length / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)


def _bearing_to_target(origin: Vector2, target: Vector2) -> float:
    # Sprites point up, so zero bearing is a quarter turn from +x.
    return math.atan2(target.y - origin.y, target.x - origin.x) + math.pi / 2.0


def _affine_transform(value: float, from_min: float, from_max: float, to_min: float, to_max: float) -> float:
    return (value - from_min) * ((to_max - to_min) / (from_max - from_min)) + to_min
