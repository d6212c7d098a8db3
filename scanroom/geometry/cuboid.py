"""
Cuboid fitting to 8 room corners.

Parameters are center (3), half-extents (3) and an orientation quaternion
``(w, x, y, z)``. Each input corner is matched once to a corner sign pattern
of a frame built from the edges at the first corner, then all parameters are
refined together with
``scipy.optimize.least_squares``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from scanroom.core.errors import GeometryDegeneracyError, ScanroomInputError
from scanroom.geometry.plane import PlaneEq, as_points, as_vec3, signed_distance
from scanroom.geometry.tolerance import EPS_ON_PLANE, EPS_POS

CUBOID_CORNERS = 8


@dataclass(frozen=True)
class CuboidFit:
    center: np.ndarray
    half_extents: np.ndarray
    quaternion: np.ndarray  # (w, x, y, z), unit
    signs: np.ndarray  # (8, 3) corner sign pattern per input point
    iterations: int
    residual: float  # mean squared corner distance

    @property
    def rotation(self) -> np.ndarray:
        return quaternion_to_matrix(self.quaternion)

    @property
    def rmse(self) -> float:
        return float(np.sqrt(self.residual))


def quaternion_to_matrix(q) -> np.ndarray:
    w, x, y, z = np.asarray(q, dtype=float) / np.linalg.norm(q)
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


def matrix_to_quaternion(m) -> np.ndarray:
    r = np.asarray(m, dtype=float)
    tr = np.trace(r)
    if tr > 0:
        s = np.sqrt(tr + 1.0) * 2
        q = [0.25 * s, (r[2, 1] - r[1, 2]) / s, (r[0, 2] - r[2, 0]) / s, (r[1, 0] - r[0, 1]) / s]
    elif r[0, 0] > r[1, 1] and r[0, 0] > r[2, 2]:
        s = np.sqrt(1.0 + r[0, 0] - r[1, 1] - r[2, 2]) * 2
        q = [(r[2, 1] - r[1, 2]) / s, 0.25 * s, (r[0, 1] + r[1, 0]) / s, (r[0, 2] + r[2, 0]) / s]
    elif r[1, 1] > r[2, 2]:
        s = np.sqrt(1.0 + r[1, 1] - r[0, 0] - r[2, 2]) * 2
        q = [(r[0, 2] - r[2, 0]) / s, (r[0, 1] + r[1, 0]) / s, 0.25 * s, (r[1, 2] + r[2, 1]) / s]
    else:
        s = np.sqrt(1.0 + r[2, 2] - r[0, 0] - r[1, 1]) * 2
        q = [(r[1, 0] - r[0, 1]) / s, (r[0, 2] + r[2, 0]) / s, (r[1, 2] + r[2, 1]) / s, 0.25 * s]
    q = np.asarray(q, dtype=float)
    return q / np.linalg.norm(q)


def _model_corners(params: np.ndarray, signs: np.ndarray) -> np.ndarray:
    center = params[0:3]
    half = params[3:6]
    rot = quaternion_to_matrix(params[6:10])
    return center + (signs * half) @ rot.T


def _initial_frame(pts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # The two nearest neighbours of any cuboid corner are always along edges.
    center = pts.mean(axis=0)
    p0 = pts[0]
    order = np.argsort(np.linalg.norm(pts - p0, axis=1))
    e1 = pts[order[1]] - p0
    e2 = pts[order[2]] - p0
    if np.linalg.norm(e1) <= EPS_POS:
        raise GeometryDegeneracyError("duplicate cuboid corners")
    e1 = e1 / np.linalg.norm(e1)
    e2 = e2 - np.dot(e2, e1) * e1
    if np.linalg.norm(e2) <= EPS_POS:
        raise GeometryDegeneracyError("cuboid corners are collinear")
    e2 = e2 / np.linalg.norm(e2)
    e3 = np.cross(e1, e2)
    return center, np.column_stack([e1, e2, e3])


def fit_cuboid(points: Sequence) -> CuboidFit:
    pts = as_points(points)
    if len(pts) != CUBOID_CORNERS:
        raise ScanroomInputError(f"cuboid fitting needs {CUBOID_CORNERS} corners, got {len(pts)}")

    center, rot = _initial_frame(pts)
    local = (pts - center) @ rot
    signs = np.where(local >= 0.0, 1.0, -1.0)
    if len({tuple(s) for s in signs}) != CUBOID_CORNERS:
        raise GeometryDegeneracyError("corners do not span a cuboid (ambiguous corner assignment)")
    half = np.maximum(np.abs(local).mean(axis=0), EPS_POS)
    x0 = np.concatenate([center, half, matrix_to_quaternion(rot)])

    def residuals(params: np.ndarray) -> np.ndarray:
        return (_model_corners(params, signs) - pts).ravel()

    res = least_squares(residuals, x0)
    params = res.x
    q = params[6:10] / np.linalg.norm(params[6:10])
    # A negative half-extent is the same cuboid mirrored; fold the sign into the pattern.
    flip = np.where(params[3:6] < 0.0, -1.0, 1.0)
    err = float(np.mean(np.sum((_model_corners(params, signs) - pts) ** 2, axis=1)))
    return CuboidFit(
        center=params[0:3].copy(),
        half_extents=np.abs(params[3:6]),
        quaternion=q,
        signs=signs * flip,
        iterations=int(res.nfev),
        residual=err,
    )


def cuboid_corners(fit: CuboidFit) -> np.ndarray:
    """Model corners, one per input point and in input order."""
    return fit.center + (fit.signs * fit.half_extents) @ fit.rotation.T


def _reorder_polygon(corners: List[np.ndarray]) -> List[np.ndarray]:
    first, rest = corners[0], corners[1:]
    c2, c3, c4 = sorted(rest, key=lambda c: float(np.linalg.norm(c - first)))
    return [first, c2, c4, c3]


def cuboid_faces(fit: CuboidFit) -> List[Tuple[PlaneEq, np.ndarray]]:
    """
    The six outward-facing face planes, each with its 4 corners ordered as a
    polygon outline.
    """
    rot = fit.rotation
    corners = cuboid_corners(fit)
    faces: List[Tuple[PlaneEq, np.ndarray]] = []
    for k in range(3):
        for sign in (1.0, -1.0):
            n = sign * rot[:, k]
            eq = PlaneEq(normal=as_vec3(n), offset=float(np.dot(n, fit.center) + fit.half_extents[k]))
            on_face = [c for c in corners if abs(signed_distance(eq, c)) < EPS_ON_PLANE]
            if len(on_face) != 4:
                raise GeometryDegeneracyError(f"cuboid face has {len(on_face)} corners, expected 4")
            faces.append((eq, as_points(_reorder_polygon(on_face))))
    return faces
