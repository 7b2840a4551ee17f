"""Frame-driven 2D steering behaviours: seek, flee, arrive, wander, flocking and waypoint walkers."""

__version__ = "0.1.0"
