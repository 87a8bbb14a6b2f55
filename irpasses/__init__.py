"""Intra-procedural SSA IR analyses with sequential and concurrent schedulers."""

__version__ = "0.1.0"
__all__ = ["ir", "passbase", "liveness", "points2", "zerocfa", "slicing", "scheduler", "cli"]