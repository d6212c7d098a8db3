from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional, Sequence

import numpy as np

from scanroom.config import DEFAULT_WALL_MOVE_STEP
from scanroom.core.errors import ScanroomInputError
from scanroom.geometry.plane import (
    as_points,
    fit_plane,
    flip_plane_eq,
    project_points_to_plane,
    rotation_between_plane_eqs,
)
from scanroom.ops.base import OpContext, execute_op
from scanroom.scene.entities import RED, Plane
from scanroom.scene.store import SceneStore
from scanroom.scene.transforms import replace_corner_points, rotate, translate

log = logging.getLogger(__name__)


def add_plane(store: SceneStore, plane: Plane, ctx: Optional[OpContext] = None) -> Plane:
    def _validate() -> None:
        if store.find_room_containing_plane(plane.id) is not None:
            raise ScanroomInputError(f"plane {plane.id} is a room wall; edit the room instead")

    def _mutate() -> Plane:
        store.add_plane(plane)
        return plane

    return execute_op(store, op_name="add_plane", args={"plane_id": plane.id}, ctx=ctx, validate=_validate, mutate=_mutate)


def delete_plane(store: SceneStore, plane_id: int, ctx: Optional[OpContext] = None) -> None:
    """Delete a free plane or a room wall, together with its wall connections."""

    def _validate() -> None:
        store.require_plane(plane_id)

    return execute_op(
        store,
        op_name="delete_plane",
        args={"plane_id": plane_id},
        ctx=ctx,
        validate=_validate,
        mutate=lambda: store.delete_plane(plane_id),
    )


def duplicate_plane(store: SceneStore, plane_id: int, ctx: Optional[OpContext] = None) -> Plane:
    """Copy a plane under a new ID next to the original (same room, or free)."""

    def _validate() -> None:
        store.require_plane(plane_id)

    def _mutate() -> Plane:
        log.info("Duplicating wall %s", plane_id)
        dup = replace(store.require_plane(plane_id), id=store.gen_id())
        room = store.find_room_containing_plane(plane_id)
        if room is not None:
            store.update_room(replace(room, planes=(dup,) + room.planes))
        else:
            store.add_plane(dup)
        return dup

    return execute_op(
        store,
        op_name="duplicate_plane",
        args={"plane_id": plane_id},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def plane_from_points(store: SceneStore, room_id: int, points: Sequence, ctx: Optional[OpContext] = None) -> Plane:
    """
    Fit a plane through picked points and add it to a room; its outline is
    the points projected onto the plane.
    """
    pts = as_points(points)

    def _validate() -> None:
        store.require_room(room_id)
        if len(pts) < 3:
            raise ScanroomInputError(f"{len(pts)} points selected, need at least 3")

    def _mutate() -> Plane:
        eq = fit_plane(pts)
        plane = Plane(id=store.gen_id(), eq=eq, color=RED, bounds=project_points_to_plane(eq, pts))
        store.change_room(room_id, lambda r: replace(r, planes=(plane,) + r.planes))
        return plane

    return execute_op(
        store,
        op_name="plane_from_points",
        args={"room_id": room_id, "points": pts.tolist()},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def rotate_plane_onto(store: SceneStore, plane_id_1: int, plane_id_2: int, ctx: Optional[OpContext] = None):
    """
    Turn plane 1 to match plane 2.

    If plane 1 is a room wall the whole room turns, about its own mean, so that
    the wall ends up facing plane 2 (as two sides of one physical wall do).
    A free plane is turned to face the same way as plane 2.
    """

    def _validate() -> None:
        if plane_id_1 == plane_id_2:
            raise ScanroomInputError("need 2 different planes")
        store.require_plane(plane_id_1)
        store.require_plane(plane_id_2)

    def _mutate():
        p1 = store.require_plane(plane_id_1)
        p2 = store.require_plane(plane_id_2)
        room = store.find_room_containing_plane(plane_id_1)
        if room is not None:
            rot = rotation_between_plane_eqs(p1.eq, flip_plane_eq(p2.eq))
            log.info("Rotating room %s", room.id)
            new_room = rotate(room, rot)
            store.update_room(new_room)
            return new_room
        rot = rotation_between_plane_eqs(p1.eq, p2.eq)
        log.info("Rotating plane %s", plane_id_1)
        new_plane = rotate(p1, rot)
        store.add_plane(new_plane)
        return new_plane

    return execute_op(
        store,
        op_name="rotate_plane_onto",
        args={"plane_ids": [plane_id_1, plane_id_2]},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def move_wall(
    store: SceneStore,
    plane_id: int,
    direction,
    step: float = DEFAULT_WALL_MOVE_STEP,
    ctx: Optional[OpContext] = None,
) -> Plane:
    """
    Shift one plane by ``step * direction``.

    When every outline point of a room wall is also a room corner (true for
    walls built from corners, e.g. after cuboid fitting) those corners move
    with it. A fitted cuboid is not re-fitted.
    """
    offset = float(step) * np.asarray(direction, dtype=float).reshape(3)

    def _validate() -> None:
        store.require_plane(plane_id)

    def _mutate() -> Plane:
        plane = store.require_plane(plane_id)
        moved = translate(plane, offset)
        room = store.find_room_containing_plane(plane_id)
        if room is None:
            store.add_plane(moved)
            return moved
        corners = room.corners
        corner_points = [p for _, p in corners]
        if all(any(np.allclose(b, c, rtol=0.0, atol=1e-9) for c in corner_points) for b in plane.bounds):
            corners = replace_corner_points(corners, plane.bounds, moved.bounds)
        planes = tuple(moved if p.id == plane_id else p for p in room.planes)
        store.update_room(replace(room, planes=planes, corners=corners))
        return moved

    return execute_op(
        store,
        op_name="move_wall",
        args={"plane_id": plane_id, "offset": offset.tolist()},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )
