"""
Plane algebra, transform matrices and cuboid fitting.
"""

from scanroom.geometry.plane import (
    PlaneEq,
    fit_plane,
    flip_plane_eq,
    intersect_three_planes,
    make_plane_eq,
    project_to_plane,
    rotate_plane_eq_around,
    rotation_between_plane_eqs,
    signed_distance,
    translate_plane_eq,
)

__all__ = [
    "PlaneEq",
    "fit_plane",
    "flip_plane_eq",
    "intersect_three_planes",
    "make_plane_eq",
    "project_to_plane",
    "rotate_plane_eq_around",
    "rotation_between_plane_eqs",
    "signed_distance",
    "translate_plane_eq",
]
