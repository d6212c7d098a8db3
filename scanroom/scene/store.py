"""
In-memory entity store for one editing session.

Maps are replaced whole on every write (never mutated after publication), so
a reader holding a map obtained earlier keeps a consistent snapshot. All
mutation is expected from a single editing thread; only ID issuance is
shared with upload workers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from scanroom.core.errors import InvariantViolation, ScanroomInputError
from scanroom.core.ids import IdAllocator
from scanroom.geometry.plane import Vec3
from scanroom.scene.entities import Cloud, Plane, Room
from scanroom.scene.walls import WallConnection, WallGraph

log = logging.getLogger(__name__)

CloudListener = Callable[[Cloud], None]
ReleaseListener = Callable[[int], None]


@dataclass(frozen=True)
class StoreSnapshot:
    rooms: Mapping[int, Room]
    planes: Mapping[int, Plane]
    clouds: Mapping[int, Cloud]
    pickable_points: Mapping[int, Vec3]
    edges: Tuple[WallConnection, ...]


class SceneStore:
    def __init__(self, ids: Optional[IdAllocator] = None) -> None:
        self.ids = ids or IdAllocator()
        self.walls = WallGraph()
        self._rooms: Dict[int, Room] = {}
        self._planes: Dict[int, Plane] = {}
        self._clouds: Dict[int, Cloud] = {}
        self._pickable_points: Dict[int, Vec3] = {}
        self._cloud_listeners: List[CloudListener] = []
        self._release_listeners: List[ReleaseListener] = []
        # Log of committed editing operations.
        self.history: List[Dict[str, Any]] = []

    # -- events -----------------------------------------------------------

    def on_cloud_updated(self, fn: CloudListener) -> None:
        """Register a callback for clouds that need (re)uploading."""
        self._cloud_listeners.append(fn)

    def on_cloud_released(self, fn: ReleaseListener) -> None:
        """Register a callback for cloud IDs whose resources can be freed."""
        self._release_listeners.append(fn)

    def _emit_updated(self, cloud: Cloud) -> None:
        for fn in list(self._cloud_listeners):
            fn(cloud)

    def _emit_released(self, cloud_ids: Iterable[int]) -> None:
        for cid in cloud_ids:
            for fn in list(self._release_listeners):
                fn(cid)

    # -- ids --------------------------------------------------------------

    def gen_id(self) -> int:
        return self.ids.next_id()

    # -- read access ------------------------------------------------------

    @property
    def rooms(self) -> Mapping[int, Room]:
        return MappingProxyType(self._rooms)

    @property
    def planes(self) -> Mapping[int, Plane]:
        """Free planes (not owned by any room)."""
        return MappingProxyType(self._planes)

    @property
    def clouds(self) -> Mapping[int, Cloud]:
        """Free clouds (not owned by any room)."""
        return MappingProxyType(self._clouds)

    @property
    def pickable_points(self) -> Mapping[int, Vec3]:
        return MappingProxyType(self._pickable_points)

    def require_room(self, room_id: int) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise ScanroomInputError(f"Room with ID {room_id} does not exist")
        return room

    def find_room_containing_plane(self, plane_id: int) -> Optional[Room]:
        for r in self._rooms.values():
            if r.has_plane(plane_id):
                return r
        return None

    def find_room_containing_suggested_corner(self, corner_id: int) -> Optional[Room]:
        for r in self._rooms.values():
            if any(i == corner_id for i, _ in r.suggested_corners):
                return r
        return None

    def get_any_plane(self, plane_id: int) -> Optional[Plane]:
        """Resolve a plane ID against the free pool and every room's walls."""
        p = self._planes.get(plane_id)
        if p is not None:
            return p
        room = self.find_room_containing_plane(plane_id)
        if room is not None:
            return room.plane(plane_id)
        return None

    def require_plane(self, plane_id: int) -> Plane:
        p = self.get_any_plane(plane_id)
        if p is None:
            raise ScanroomInputError(f"Plane with ID {plane_id} does not exist")
        return p

    # -- writes -----------------------------------------------------------

    def _cloud_owner(self, cloud_id: int) -> Optional[str]:
        if cloud_id in self._clouds:
            return "free"
        for r in self._rooms.values():
            if r.cloud.id == cloud_id:
                return f"room {r.id}"
        return None

    def update_room(self, room: Room) -> None:
        """Insert or replace a room by ID and queue its cloud for upload."""
        owner = self._cloud_owner(room.cloud.id)
        if owner is not None and owner != f"room {room.id}":
            raise InvariantViolation(f"cloud ID {room.cloud.id} already in use by {owner}")
        for p in room.planes:
            if p.id in self._planes:
                raise InvariantViolation(f"plane {p.id} is both free and owned by room {room.id}")
        self._rooms = {**self._rooms, room.id: room}
        self._emit_updated(room.cloud)

    def change_room(self, room_id: int, fn: Callable[[Room], Room]) -> Room:
        new = fn(self.require_room(room_id))
        if new.id != room_id:
            raise InvariantViolation(f"change_room changed room ID {room_id} to {new.id}")
        self.update_room(new)
        return new

    def add_plane(self, plane: Plane) -> None:
        """Insert or replace a free plane."""
        owner = self.find_room_containing_plane(plane.id)
        if owner is not None:
            raise InvariantViolation(f"plane {plane.id} is already a wall of room {owner.id}")
        self._planes = {**self._planes, plane.id: plane}

    def add_cloud(self, cloud: Cloud) -> None:
        owner = self._cloud_owner(cloud.id)
        if owner is not None:
            raise InvariantViolation(f"cloud ID {cloud.id} already in use by {owner}")
        self._clouds = {**self._clouds, cloud.id: cloud}
        self._emit_updated(cloud)

    def delete_plane(self, plane_id: int) -> None:
        room = self.find_room_containing_plane(plane_id)
        if room is not None:
            self._rooms = {
                **self._rooms,
                room.id: replace(room, planes=tuple(p for p in room.planes if p.id != plane_id)),
            }
        elif plane_id in self._planes:
            self._planes = {k: v for k, v in self._planes.items() if k != plane_id}
        else:
            raise ScanroomInputError(f"Plane with ID {plane_id} does not exist")
        self.walls.drop_planes([plane_id])

    def delete_room(self, room_id: int) -> int:
        """Remove a room; returns the ID of its (now orphaned) cloud."""
        room = self.require_room(room_id)
        self._rooms = {k: v for k, v in self._rooms.items() if k != room_id}
        self.walls.drop_planes(p.id for p in room.planes)
        self._emit_released([room.cloud.id])
        return room.cloud.id

    def clear_rooms(self) -> List[int]:
        """Drop every room and wall connection; returns the released cloud IDs."""
        released = [r.cloud.id for r in self._rooms.values()]
        self._rooms = {}
        self.walls.clear()
        for cid in released:
            log.info("Deallocating room cloud %s", cid)
        self._emit_released(released)
        return released

    def add_pickable_points(self, points: Iterable[Vec3]) -> List[int]:
        issued = self.ids.zip_ids(points)
        self._pickable_points = {**dict(issued), **self._pickable_points}
        return [i for i, _ in issued]

    def clear_pickable_points(self) -> None:
        self._pickable_points = {}

    # -- whole-state operations ------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            rooms=self._rooms,
            planes=self._planes,
            clouds=self._clouds,
            pickable_points=self._pickable_points,
            edges=self.walls.edges,
        )

    def restore(self, snap: StoreSnapshot) -> None:
        """Roll back to `snap`. Released or updated clouds are re-announced."""
        current_clouds = {r.cloud.id for r in self._rooms.values()} | set(self._clouds)
        self._rooms = dict(snap.rooms)
        self._planes = dict(snap.planes)
        self._clouds = dict(snap.clouds)
        self._pickable_points = dict(snap.pickable_points)
        self.walls.replace_all(snap.edges)
        restored_clouds = {r.cloud.id for r in self._rooms.values()} | set(self._clouds)
        self._emit_released(sorted(current_clouds - restored_clouds))
        for r in self._rooms.values():
            self._emit_updated(r.cloud)
        for c in self._clouds.values():
            self._emit_updated(c)

    def replace_rooms(self, rooms: Mapping[int, Room], edges: Iterable[WallConnection]) -> None:
        """Swap in a complete room map and wall list in one step (used by load)."""
        released = [r.cloud.id for r in self._rooms.values()]
        new_rooms = dict(rooms)
        for rid, r in new_rooms.items():
            if rid != r.id:
                raise InvariantViolation(f"room stored under key {rid} has ID {r.id}")
        self._rooms = new_rooms
        self.walls.replace_all(edges)
        self._emit_released(released)
        for r in new_rooms.values():
            self._emit_updated(r.cloud)
