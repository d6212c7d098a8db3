"""
Room registration: corner suggestion and least-squares room placement.
"""

from scanroom.registration.corners import DEFAULT_CUTOFF_FACTOR, corners_near_room
from scanroom.registration.lstsq import group_connected_components, lst_sq_distances
from scanroom.registration.optimizer import OptimizationReport, optimize_room_positions

__all__ = [
    "DEFAULT_CUTOFF_FACTOR",
    "OptimizationReport",
    "corners_near_room",
    "group_connected_components",
    "lst_sq_distances",
    "optimize_room_positions",
]
