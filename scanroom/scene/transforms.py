"""
Rigid and projective transforms propagated through scene entities.

Every function is total over points, plane equations, planes, clouds and
rooms and returns a new value. Rooms also fold the operation into their
cumulative transform ``proj`` (new operation applied after the old ones), so
``proj`` always maps the room's as-loaded pose to its current pose.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TypeVar

import numpy as np

from scanroom.core.errors import ScanroomInputError
from scanroom.geometry import transform as tf
from scanroom.geometry.plane import (
    PlaneEq,
    as_points,
    rotate_plane_eq_around,
    translate_plane_eq,
)
from scanroom.scene.entities import Cloud, Corner, Plane, Room

E = TypeVar("E")

_ORIGIN = np.zeros(3)


def _translate_points(points: np.ndarray, offset: np.ndarray) -> np.ndarray:
    return as_points(points) + offset


def _rotate_points_around(points: np.ndarray, center: np.ndarray, rot: np.ndarray) -> np.ndarray:
    return (as_points(points) - center) @ rot.T + center


def _map_corners(corners, fn) -> tuple:
    if not corners:
        return ()
    ids = [i for i, _ in corners]
    moved = fn(as_points([p for _, p in corners]))
    return tuple((i, p) for i, p in zip(ids, moved))


def translate(entity: E, offset) -> E:
    """Move `entity` by `offset`."""
    off = np.asarray(offset, dtype=float).reshape(3)
    if isinstance(entity, PlaneEq):
        return translate_plane_eq(entity, off)
    if isinstance(entity, Plane):
        return replace(
            entity,
            eq=translate_plane_eq(entity.eq, off),
            bounds=_translate_points(entity.bounds, off),
        )
    if isinstance(entity, Cloud):
        return replace(entity, points=_translate_points(entity.points, off))
    if isinstance(entity, Room):
        return replace(
            entity,
            planes=tuple(translate(p, off) for p in entity.planes),
            cloud=translate(entity.cloud, off),
            corners=_map_corners(entity.corners, lambda pts: pts + off),
            suggested_corners=_map_corners(entity.suggested_corners, lambda pts: pts + off),
            proj=tf.translation_matrix(off) @ entity.proj,
        )
    return np.asarray(entity, dtype=float) + off


def rotate_around(entity: E, center, rotation) -> E:
    """Rotate `entity` by the 3x3 `rotation` about `center`."""
    c = np.asarray(center, dtype=float).reshape(3)
    rot = np.asarray(rotation, dtype=float).reshape(3, 3)
    if isinstance(entity, PlaneEq):
        return rotate_plane_eq_around(entity, c, rot)
    if isinstance(entity, Plane):
        return replace(
            entity,
            eq=rotate_plane_eq_around(entity.eq, c, rot),
            bounds=_rotate_points_around(entity.bounds, c, rot),
        )
    if isinstance(entity, Cloud):
        return replace(entity, points=_rotate_points_around(entity.points, c, rot))
    if isinstance(entity, Room):
        move = lambda pts: _rotate_points_around(pts, c, rot)  # noqa: E731
        return replace(
            entity,
            planes=tuple(rotate_around(p, c, rot) for p in entity.planes),
            cloud=rotate_around(entity.cloud, c, rot),
            corners=_map_corners(entity.corners, move),
            suggested_corners=_map_corners(entity.suggested_corners, move),
            proj=tf.rotation_around_matrix(c, rot) @ entity.proj,
        )
    p = np.asarray(entity, dtype=float).reshape(3)
    return rot @ (p - c) + c


def rotate(entity: E, rotation) -> E:
    """
    Rotate a plane or room about its own mean point.

    Rooms turn about their cloud centroid rather than the world origin, so a
    rotation command stays anchored to the object being edited.
    """
    if isinstance(entity, (Plane, Room)):
        return rotate_around(entity, entity.mean(), rotation)
    raise ScanroomInputError(f"rotate() needs a Plane or Room, got {type(entity).__name__}")


def project_room(room: Room, transform) -> Room:
    """
    Apply a full rigid transform about the world origin to every point of the
    room and compose it onto the cumulative transform.

    The cumulative transform is itself relative to the origin, so replaying a
    captured ``proj`` onto a freshly loaded room reproduces the same pose.
    """
    m = tf.as_transform(transform)
    rot, off = tf.split_rigid(m)

    def move(pts: np.ndarray) -> np.ndarray:
        return as_points(pts) @ rot.T + off

    def move_plane(p: Plane) -> Plane:
        return translate(rotate_around(p, _ORIGIN, rot), off)

    return replace(
        room,
        planes=tuple(move_plane(p) for p in room.planes),
        cloud=replace(room.cloud, points=move(room.cloud.points)),
        corners=_map_corners(room.corners, move),
        suggested_corners=_map_corners(room.suggested_corners, move),
        proj=m @ room.proj,
    )


def replace_corner_points(corners, old_points, new_points) -> tuple:
    """Map each corner lying exactly on one of `old_points` to its moved counterpart."""
    lookup = [(tuple(float(x) for x in o), tuple(float(x) for x in n)) for o, n in zip(old_points, new_points)]
    out = []
    for cid, p in corners:
        moved: Corner = (cid, p)
        for o, n in lookup:
            if np.allclose(p, o, rtol=0.0, atol=1e-9):
                moved = (cid, n)
                break
        out.append(moved)
    return tuple(out)
