from __future__ import annotations

from typing import List, Tuple

import numpy as np

from scanroom.core.errors import ScanroomInputError

# Projective transforms are 4x4 float arrays in the column-vector convention:
# p' = M @ [x, y, z, 1]. A transform applied after M is composed as N @ M.
# This is the row-major left-multiplicative form other tools expect, so the
# stored matrix is exported as is.


def identity() -> np.ndarray:
    return np.eye(4, dtype=float)


def translation_matrix(offset) -> np.ndarray:
    m = np.eye(4, dtype=float)
    m[:3, 3] = np.asarray(offset, dtype=float).reshape(3)
    return m


def linear_matrix(rotation) -> np.ndarray:
    m = np.eye(4, dtype=float)
    m[:3, :3] = np.asarray(rotation, dtype=float).reshape(3, 3)
    return m


def rotation_around_matrix(center, rotation) -> np.ndarray:
    c = np.asarray(center, dtype=float).reshape(3)
    return translation_matrix(c) @ linear_matrix(rotation) @ translation_matrix(-c)


def split_rigid(transform) -> Tuple[np.ndarray, np.ndarray]:
    """Linear 3x3 part and translation of an affine 4x4 transform."""
    m = as_transform(transform)
    if not np.allclose(m[3], (0.0, 0.0, 0.0, 1.0)):
        raise ScanroomInputError("projective transforms with a perspective row are not supported")
    return m[:3, :3].copy(), m[:3, 3].copy()


def as_transform(value) -> np.ndarray:
    m = np.asarray(value, dtype=float)
    if m.shape == (16,):
        m = m.reshape(4, 4)
    if m.shape != (4, 4):
        raise ScanroomInputError(f"expected a 4x4 transform, got shape {m.shape}")
    return m


def transform_points(transform, points) -> np.ndarray:
    rot, off = split_rigid(transform)
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    return pts @ rot.T + off


def to_rows(transform) -> List[List[float]]:
    return [[float(x) for x in row] for row in as_transform(transform)]
