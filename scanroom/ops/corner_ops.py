from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Optional, Sequence

import numpy as np

from scanroom.core.errors import GeometryDegeneracyError, ScanroomInputError
from scanroom.geometry.cuboid import CUBOID_CORNERS
from scanroom.geometry.plane import as_vec3, intersect_three_planes
from scanroom.ops.base import OpContext, execute_op
from scanroom.registration.corners import DEFAULT_CUTOFF_FACTOR, CornerSuggestions, corners_near_room
from scanroom.scene.entities import RED, Cloud, Corner, OneColor, Room
from scanroom.scene.store import SceneStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CornerPlacement:
    """Where `add_corner_from_planes` put its point: a room corner or a free cloud."""

    point: np.ndarray
    id: int
    room_id: Optional[int] = None

    @property
    def is_room_corner(self) -> bool:
        return self.room_id is not None


def add_corner_to_room(room: Room, corner: Corner) -> Room:
    """Accept `corner`, removing it from the suggestions if it was one."""
    return replace(
        room,
        corners=(corner,) + room.corners,
        suggested_corners=tuple(c for c in room.suggested_corners if c[0] != corner[0]),
    )


def add_corner_from_planes(store: SceneStore, plane_ids: Sequence[int], ctx: Optional[OpContext] = None) -> CornerPlacement:
    """
    Intersect three planes.

    If all three are walls of the same room and the room has fewer than 8
    corners, the point becomes a new corner of that room. Otherwise it is
    added as a single-point free cloud.
    """
    pids = list(plane_ids)

    def _corner() -> np.ndarray:
        if len(pids) != 3:
            raise ScanroomInputError(f"{len(pids)} planes selected, need 3")
        p1, p2, p3 = (store.require_plane(i) for i in pids)
        point = intersect_three_planes(p1.eq, p2.eq, p3.eq)
        if point is None:
            raise GeometryDegeneracyError("Planes do not intersect!")
        return point

    def _owner() -> Optional[Room]:
        rooms = [store.find_room_containing_plane(i) for i in pids]
        if all(r is not None for r in rooms) and len({r.id for r in rooms}) == 1:
            return rooms[0]
        return None

    def _validate() -> None:
        _corner()
        room = _owner()
        if room is not None and len(room.corners) >= CUBOID_CORNERS:
            raise ScanroomInputError(f"Room {room.id} already has {CUBOID_CORNERS} corners")

    def _mutate() -> CornerPlacement:
        point = _corner()
        room = _owner()
        if room is not None:
            log.info("Merging planes of room %s to corner %s", room.id, point.tolist())
            cid = store.gen_id()
            store.update_room(add_corner_to_room(room, (cid, as_vec3(point))))
            return CornerPlacement(point=point, id=cid, room_id=room.id)
        log.info("Merged planes to corner %s", point.tolist())
        cloud = Cloud(id=store.gen_id(), color=OneColor(RED), points=point.reshape(1, 3))
        store.add_cloud(cloud)
        return CornerPlacement(point=point, id=cloud.id)

    return execute_op(
        store,
        op_name="add_corner_from_planes",
        args={"plane_ids": pids},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def suggest_corners(
    store: SceneStore,
    room_id: int,
    cutoff_factor: float = DEFAULT_CUTOFF_FACTOR,
    ctx: Optional[OpContext] = None,
) -> CornerSuggestions:
    """
    Offer the plane-triple intersections near the room as corner suggestions,
    each under a fresh ID. A room with no corners yet and exactly 8
    suggestions has them accepted directly.
    """

    def _validate() -> None:
        room = store.require_room(room_id)
        if len(room.planes) < 3:
            raise ScanroomInputError(f"room {room_id} has {len(room.planes)} planes, need at least 3")
        if len(room.cloud.points) == 0:
            raise ScanroomInputError(f"room {room_id} has an empty cloud; cannot suggest corners")

    def _mutate() -> CornerSuggestions:
        room = store.require_room(room_id)
        points = corners_near_room(room, cutoff_factor)
        issued = tuple((i, as_vec3(p)) for i, p in store.ids.zip_ids(points))
        candidates = sum(1 for _ in combinations(room.planes, 3))
        if not room.corners and len(issued) == CUBOID_CORNERS:
            log.info("Only have %d corners from the %d planes - you have no choice", len(issued), len(room.planes))
            store.update_room(replace(room, corners=issued))
            return CornerSuggestions(corners=issued, candidates=candidates, auto_accepted=True)
        log.info("Suggesting %d corners from %d planes", len(issued), len(room.planes))
        store.update_room(replace(room, suggested_corners=issued))
        return CornerSuggestions(corners=issued, candidates=candidates, auto_accepted=False)

    return execute_op(
        store,
        op_name="suggest_corners",
        args={"room_id": room_id, "cutoff_factor": cutoff_factor},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def accept_corner_suggestion(store: SceneStore, corner_id: int, ctx: Optional[OpContext] = None) -> Room:
    def _room() -> Room:
        room = store.find_room_containing_suggested_corner(corner_id)
        if room is None:
            raise ScanroomInputError(f"no room has a corner suggestion with ID {corner_id}")
        return room

    def _validate() -> None:
        _room()

    def _mutate() -> Room:
        room = _room()
        log.info("Accepting corner suggestion %s to room %s", corner_id, room.id)
        corner = next(c for c in room.suggested_corners if c[0] == corner_id)
        new = add_corner_to_room(room, corner)
        store.update_room(new)
        return new

    return execute_op(
        store,
        op_name="accept_corner_suggestion",
        args={"corner_id": corner_id},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )
