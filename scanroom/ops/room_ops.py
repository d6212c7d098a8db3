from __future__ import annotations

import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import numpy as np

from scanroom.core.errors import ScanroomInputError
from scanroom.geometry.cuboid import CUBOID_CORNERS, CuboidFit, cuboid_corners, cuboid_faces, fit_cuboid
from scanroom.geometry.plane import axis_angle_matrix, flip_plane_eq, make_plane_eq, rotation_between_plane_eqs
from scanroom.io.pcd import PointCloudReader, cloud_from_file
from scanroom.io.plane_import import planes_from_dir
from scanroom.ops.base import OpContext, execute_op
from scanroom.scene.entities import ManyColors, Plane, Room, random_color
from scanroom.scene.store import SceneStore
from scanroom.scene.transforms import project_room, rotate, translate

log = logging.getLogger(__name__)

CLOUD_FILE = "cloud_downsampled.pcd"

X_AXIS = np.array([1.0, 0.0, 0.0])
Y_AXIS = np.array([0.0, 1.0, 0.0])

CEILING_FRACTION = 0.2


def _vec(v) -> np.ndarray:
    return np.asarray(v, dtype=float).reshape(3)


def make_inward_facing(plane: Plane, room_center) -> Plane:
    """Flip `plane` if its normal points away from `room_center`."""
    inward = _vec(room_center) - plane.mean()
    if float(np.dot(inward, plane.normal)) > 0.0:
        return plane
    return replace(plane, eq=flip_plane_eq(plane.eq))


def load_room(
    store: SceneStore,
    directory,
    *,
    kinfu: bool = False,
    reader: Optional[PointCloudReader] = None,
    rng: Optional[np.random.Generator] = None,
    ctx: Optional[OpContext] = None,
) -> Room:
    """
    Load a segmented room scan directory: the cloud from
    ``cloud_downsampled.pcd`` and the walls from ``planes.txt`` plus their hull
    files. Wall normals are turned to face the room's inside.

    Without `kinfu` the room comes back exactly as stored on disk, with an
    identity transform. KinFu captures are upside down and are turned half a
    revolution about X (recorded in the room transform).
    """
    d = Path(directory)

    def _validate() -> None:
        if not d.is_dir():
            raise ScanroomInputError(f"room directory {d} does not exist")

    def _mutate() -> Room:
        cloud_path = d / CLOUD_FILE
        cloud = cloud_from_file(store.ids, cloud_path, reader)
        center = cloud.mean()
        planes = [make_inward_facing(p, center) for p in planes_from_dir(store.ids, d, reader, rng)]
        room = Room(id=store.gen_id(), planes=tuple(planes), cloud=cloud, name=str(cloud_path))
        if kinfu:
            room = rotate(room, axis_angle_matrix(X_AXIS, math.pi))
        store.update_room(room)
        log.info("Room %s loaded", room.id)
        return room

    return execute_op(
        store,
        op_name="load_room",
        args={"directory": str(d), "kinfu": kinfu},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def move_room(store: SceneStore, room_id: int, offset, ctx: Optional[OpContext] = None) -> Room:
    off = _vec(offset)

    def _validate() -> None:
        store.require_room(room_id)

    def _mutate() -> Room:
        return store.change_room(room_id, lambda r: translate(r, off))

    return execute_op(
        store,
        op_name="move_room",
        args={"room_id": room_id, "offset": off.tolist()},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def move_all_rooms(store: SceneStore, offset, ctx: Optional[OpContext] = None) -> List[int]:
    off = _vec(offset)

    def _mutate() -> List[int]:
        ids = sorted(store.rooms)
        for rid in ids:
            store.change_room(rid, lambda r: translate(r, off))
        return ids

    return execute_op(
        store,
        op_name="move_all_rooms",
        args={"offset": off.tolist()},
        ctx=ctx,
        validate=None,
        mutate=_mutate,
    )


def swap_room_positions(store: SceneStore, plane_id_1: int, plane_id_2: int, ctx: Optional[OpContext] = None):
    """Swap the positions (cloud means) of the rooms owning the two walls."""

    def _rooms():
        r1 = store.find_room_containing_plane(plane_id_1)
        r2 = store.find_room_containing_plane(plane_id_2)
        if r1 is None or r2 is None or r1.id == r2.id:
            raise ScanroomInputError(
                f"The planes {(plane_id_1, plane_id_2)} are not walls of different rooms!"
            )
        return r1, r2

    def _validate() -> None:
        _rooms()

    def _mutate():
        r1, r2 = _rooms()
        log.info("Swapping rooms %s", (r1.id, r2.id))
        m1, m2 = r1.mean(), r2.mean()
        store.change_room(r1.id, lambda r: translate(r, m2 - m1))
        store.change_room(r2.id, lambda r: translate(r, m1 - m2))
        return r1.id, r2.id

    return execute_op(
        store,
        op_name="swap_room_positions",
        args={"plane_ids": [plane_id_1, plane_id_2]},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def aligned_to_axis(room: Room, axis) -> Room:
    """
    Rotate `room` so that the wall whose normal is closest to `axis` faces
    exactly along `axis`.
    """
    if not room.planes:
        raise ScanroomInputError(f"room {room.id} has no planes")
    a = _vec(axis)
    wall = max(room.planes, key=lambda p: float(np.dot(a, p.normal)))
    rot = rotation_between_plane_eqs(wall.eq, make_plane_eq(a, 1.0))
    return rotate(room, rot)


def auto_align_axis(store: SceneStore, room_id: int, axis, ctx: Optional[OpContext] = None) -> Room:
    a = _vec(axis)

    def _validate() -> None:
        if not store.require_room(room_id).planes:
            raise ScanroomInputError(f"room {room_id} has no planes")

    def _mutate() -> Room:
        log.info("auto aligning room %s to %s", room_id, a.tolist())
        return store.change_room(room_id, lambda r: aligned_to_axis(r, a))

    return execute_op(
        store,
        op_name="auto_align_axis",
        args={"room_id": room_id, "axis": a.tolist()},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def auto_align_floor(store: SceneStore, room_id: int, ctx: Optional[OpContext] = None) -> Room:
    """Level the room: its most upward-facing plane becomes the floor (normal +Y)."""
    return auto_align_axis(store, room_id, Y_AXIS, ctx=ctx)


def auto_align_and_rotate(store: SceneStore, room_id: int, ctx: Optional[OpContext] = None) -> Room:
    """Level the floor, square one side wall to X, then turn a quarter about Y."""

    def _validate() -> None:
        if not store.require_room(room_id).planes:
            raise ScanroomInputError(f"room {room_id} has no planes")

    def _step(room: Room) -> Room:
        room = aligned_to_axis(room, Y_AXIS)
        room = aligned_to_axis(room, X_AXIS)
        return rotate(room, axis_angle_matrix(Y_AXIS, math.pi / 2))

    return execute_op(
        store,
        op_name="auto_align_and_rotate",
        args={"room_id": room_id},
        ctx=ctx,
        validate=_validate,
        mutate=lambda: store.change_room(room_id, _step),
    )


def apply_room_projection(store: SceneStore, room_id: int, transform, ctx: Optional[OpContext] = None) -> Room:
    """Apply a rigid 4x4 transform (about the world origin) to a room."""
    m = np.asarray(transform, dtype=float)

    def _validate() -> None:
        store.require_room(room_id)

    return execute_op(
        store,
        op_name="apply_room_projection",
        args={"room_id": room_id, "transform": m.reshape(-1).tolist()},
        ctx=ctx,
        validate=_validate,
        mutate=lambda: store.change_room(room_id, lambda r: project_room(r, m)),
    )


def make_room_points_pickable(store: SceneStore, room_id: int, ctx: Optional[OpContext] = None) -> List[int]:
    def _validate() -> None:
        store.require_room(room_id)

    def _mutate() -> List[int]:
        room = store.require_room(room_id)
        return store.add_pickable_points(tuple(float(x) for x in p) for p in room.cloud.points)

    return execute_op(
        store,
        op_name="make_room_points_pickable",
        args={"room_id": room_id},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def without_ceiling(room: Room, fraction: float = CEILING_FRACTION) -> Room:
    """Drop the highest `fraction` of cloud points (by Y)."""
    pts = room.cloud.points
    if len(pts) == 0:
        return room
    n_discard = int(len(pts) * fraction)
    ys = pts[:, 1]
    limit = np.sort(ys)[::-1][n_discard]
    keep = ys <= limit
    color = room.cloud.color
    if isinstance(color, ManyColors):
        color = ManyColors(rgb=color.rgb[keep])
    return replace(room, cloud=replace(room.cloud, points=pts[keep], color=color))


def remove_ceiling(store: SceneStore, room_id: int, fraction: float = CEILING_FRACTION, ctx: Optional[OpContext] = None) -> Room:
    def _validate() -> None:
        store.require_room(room_id)
        if not 0.0 <= fraction < 1.0:
            raise ScanroomInputError(f"ceiling fraction must be in [0, 1), got {fraction}")

    return execute_op(
        store,
        op_name="remove_ceiling",
        args={"room_id": room_id, "fraction": fraction},
        ctx=ctx,
        validate=_validate,
        mutate=lambda: store.change_room(room_id, lambda r: without_ceiling(r, fraction)),
    )


def fit_cuboid_to_room(
    store: SceneStore,
    room_id: int,
    rng: Optional[np.random.Generator] = None,
    ctx: Optional[OpContext] = None,
) -> CuboidFit:
    """
    Replace a room's walls and corners by those of the cuboid best fitting its
    8 corners. Corner IDs are kept; the old walls get new IDs and every wall
    connection that referenced them is dropped.
    """

    def _validate() -> None:
        room = store.require_room(room_id)
        if len(room.corners) != CUBOID_CORNERS:
            raise ScanroomInputError(
                f"room {room_id} has {len(room.corners)} corners; need {CUBOID_CORNERS} to fit a cuboid"
            )

    def _mutate() -> CuboidFit:
        room = store.require_room(room_id)
        log.info("fitting cuboid to room %s", room_id)
        fit = fit_cuboid(room.corner_points())
        log.info("fit cuboid in %d steps, RMSE: %.6f", fit.iterations, fit.rmse)
        planes = tuple(
            Plane(id=store.gen_id(), eq=eq, color=random_color(rng), bounds=bounds) for eq, bounds in cuboid_faces(fit)
        )
        corners = tuple((cid, p) for (cid, _), p in zip(room.corners, cuboid_corners(fit)))
        store.update_room(replace(room, planes=planes, corners=corners))
        dropped = store.walls.drop_planes(p.id for p in room.planes)
        if dropped:
            log.info("dropped %d wall connections of room %s", dropped, room_id)
        return fit

    return execute_op(
        store,
        op_name="fit_cuboid_to_room",
        args={"room_id": room_id},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def clear_rooms(store: SceneStore, ctx: Optional[OpContext] = None) -> List[int]:
    """Remove every room and wall connection; returns the released cloud IDs."""
    log.info("Clearing")
    return execute_op(store, op_name="clear_rooms", args={}, ctx=ctx, validate=None, mutate=store.clear_rooms)
