"""
Plane algebra in Hessian normal form.

A plane is ``n . p = d`` with unit normal ``n``. The offset sits on the right
hand side so that the normal direction (which side is "inside") is part of the
equation; flipping a plane is an explicit operation, distinct from rotating it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from scanroom.core.errors import GeometryDegeneracyError, ScanroomInputError
from scanroom.geometry.tolerance import EPS_ANG, EPS_POS, EPS_RCOND


Vec3 = Tuple[float, float, float]


def as_vec3(v) -> Vec3:
    a = np.asarray(v, dtype=float).reshape(3)
    return (float(a[0]), float(a[1]), float(a[2]))


def as_points(points) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=float)
    return arr.reshape(-1, 3)


@dataclass(frozen=True)
class PlaneEq:
    normal: Vec3
    offset: float

    def normal_array(self) -> np.ndarray:
        return np.asarray(self.normal, dtype=float)


def make_plane_eq(abc, d: float) -> PlaneEq:
    """Build a plane from ``abc . p = d`` where ``abc`` need not be unit length."""
    n = np.asarray(abc, dtype=float).reshape(3)
    length = float(np.linalg.norm(n))
    if length <= EPS_POS:
        raise GeometryDegeneracyError("plane normal has zero length")
    return PlaneEq(normal=as_vec3(n / length), offset=float(d) / length)


def make_plane_eq_abcd(a: float, b: float, c: float, d: float) -> PlaneEq:
    return make_plane_eq((a, b, c), d)


def flip_plane_eq(eq: PlaneEq) -> PlaneEq:
    n = eq.normal
    return PlaneEq(normal=(-n[0], -n[1], -n[2]), offset=-eq.offset)


def signed_distance(eq: PlaneEq, point) -> float:
    return float(np.dot(eq.normal_array(), np.asarray(point, dtype=float))) - eq.offset


def project_to_plane(eq: PlaneEq, point) -> np.ndarray:
    p = np.asarray(point, dtype=float)
    return p - signed_distance(eq, p) * eq.normal_array()


def project_points_to_plane(eq: PlaneEq, points) -> np.ndarray:
    pts = as_points(points)
    n = eq.normal_array()
    dist = pts @ n - eq.offset
    return pts - dist[:, None] * n[None, :]


def point_mean(points) -> np.ndarray:
    pts = as_points(points)
    if len(pts) == 0:
        raise ScanroomInputError("mean of an empty point set")
    return pts.mean(axis=0)


def fit_plane(points) -> PlaneEq:
    """
    Best fitting plane through `points` by total least squares.

    The normal is the eigenvector of the smallest eigenvalue of the scatter
    matrix of the mean-subtracted points.
    """
    pts = as_points(points)
    if len(pts) < 3:
        raise ScanroomInputError(f"fit_plane: {len(pts)} points given, need at least 3")
    centroid = pts.mean(axis=0)
    centered = pts - centroid
    scatter = centered.T @ centered
    # eigh returns eigenvalues in ascending order.
    _, vecs = np.linalg.eigh(scatter)
    normal = vecs[:, 0]
    normal = normal / np.linalg.norm(normal)
    return PlaneEq(normal=as_vec3(normal), offset=float(np.dot(normal, centroid)))


def intersect_three_planes(p1: PlaneEq, p2: PlaneEq, p3: PlaneEq) -> Optional[np.ndarray]:
    """
    Intersection point of three planes, or ``None`` when the system is singular
    (two or more planes parallel, or all three sharing a line).

    Always solved in double precision.
    """
    lhs = np.array([p1.normal, p2.normal, p3.normal], dtype=np.float64)
    rhs = np.array([p1.offset, p2.offset, p3.offset], dtype=np.float64)
    if not np.all(np.isfinite(lhs)) or not np.all(np.isfinite(rhs)):
        return None
    cond = np.linalg.cond(lhs)
    if not np.isfinite(cond) or 1.0 / cond < EPS_RCOND:
        return None
    try:
        return np.linalg.solve(lhs, rhs)
    except np.linalg.LinAlgError:
        return None


def plane_normal_axis_index(eq: PlaneEq) -> int:
    """
    Index (0=X, 1=Y, 2=Z) of the world axis most aligned with the normal.

    Ties go to the later axis.
    """
    scores = [abs(c) for c in eq.normal]
    return max(range(3), key=lambda k: (scores[k], k))


def axis_angle_matrix(axis, angle: float) -> np.ndarray:
    """Rotation matrix (column-vector convention) of `angle` radians about `axis`."""
    a = np.asarray(axis, dtype=float).reshape(3)
    length = float(np.linalg.norm(a))
    if length <= EPS_POS:
        raise GeometryDegeneracyError("rotation axis has zero length")
    x, y, z = a / length
    c = math.cos(angle)
    s = math.sin(angle)
    t = 1.0 - c
    return np.array(
        [
            [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
            [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
            [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
        ],
        dtype=float,
    )


def rotation_between_plane_eqs(eq1: PlaneEq, eq2: PlaneEq) -> np.ndarray:
    """
    Rotation that turns the normal of `eq1` into the normal of `eq2`.

    To rotate plane 2 onto plane 1 instead, pass them the other way around.
    """
    n1 = eq1.normal_array()
    n2 = eq2.normal_array()
    cos_theta = float(np.clip(np.dot(n1, n2) / (np.linalg.norm(n1) * np.linalg.norm(n2)), -1.0, 1.0))
    axis = np.cross(n1, n2)
    if float(np.linalg.norm(axis)) <= EPS_ANG:
        if cos_theta > 0.0:
            return np.eye(3)
        # Anti-parallel: half turn about any axis perpendicular to n1.
        helper = np.array([1.0, 0.0, 0.0]) if abs(n1[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
        axis = np.cross(n1, helper)
    return axis_angle_matrix(axis, math.acos(cos_theta))


def rotate_plane_eq_around(eq: PlaneEq, center, rotation) -> PlaneEq:
    """Rotate about `center`; the offset is re-derived from the moved anchor point."""
    rot = np.asarray(rotation, dtype=float)
    c = np.asarray(center, dtype=float)
    n = eq.normal_array()
    n_new = rot @ n
    anchor = eq.offset * n
    anchor_new = rot @ (anchor - c) + c
    length = float(np.linalg.norm(n_new))
    n_new = n_new / length
    return PlaneEq(normal=as_vec3(n_new), offset=float(np.dot(anchor_new, n_new)))


def translate_plane_eq(eq: PlaneEq, offset) -> PlaneEq:
    n = eq.normal_array()
    anchor_new = eq.offset * n + np.asarray(offset, dtype=float)
    return PlaneEq(normal=eq.normal, offset=float(np.dot(anchor_new, n)))

