"""
Save file reading and writing.

Saves are UTF-8 JSON, gzip-compressed by default. Every persisted type
carries a version tag; whatever version is found is decoded into its frozen
historical shape and migrated forward, so files written by any earlier
release keep loading.
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np

from scanroom.core.errors import InvariantViolation, SaveFormatError
from scanroom.core.ids import UNASSIGNED_ID, assert_unique_ids
from scanroom.geometry.plane import PlaneEq
from scanroom.project.migrations import LEGACY_OPPOSITE_GAP, migrate_save
from scanroom.project.schema import (
    ROOM_SHAPES,
    SAVE_VERSION,
    WALL_RELATION_SHAPES,
    CloudRecord,
    ConnectionRecord,
    PlaneRecord,
    RoomV4,
    SaveV1,
    SaveV2,
    WallRelationV2,
)
from scanroom.scene.entities import Cloud, ManyColors, OneColor, Plane, Room
from scanroom.scene.store import SceneStore
from scanroom.scene.walls import Axis, Opposite, Same, WallConnection, WallRelation

log = logging.getLogger(__name__)


# -- live model <-> current shapes ------------------------------------------


def plane_to_record(p: Plane) -> PlaneRecord:
    return PlaneRecord(id=p.id, normal=p.eq.normal, offset=p.eq.offset, color=tuple(p.color), bounds=p.bounds)


def plane_from_record(r: PlaneRecord) -> Plane:
    return Plane(id=r.id, eq=PlaneEq(normal=r.normal, offset=r.offset), color=r.color, bounds=r.bounds)


def cloud_to_record(c: Cloud) -> CloudRecord:
    if isinstance(c.color, ManyColors):
        return CloudRecord(id=c.id, points=c.points, colors=c.color.rgb)
    return CloudRecord(id=c.id, points=c.points, color=tuple(c.color.rgb))


def cloud_from_record(r: CloudRecord) -> Cloud:
    color = ManyColors(rgb=r.colors) if r.colors is not None else OneColor(rgb=r.color)
    return Cloud(id=r.id, color=color, points=r.points)


def room_to_record(room: Room) -> RoomV4:
    return RoomV4(
        id=room.id,
        planes=tuple(plane_to_record(p) for p in room.planes),
        cloud=cloud_to_record(room.cloud),
        corners=tuple(room.corners),
        suggested_corners=tuple(room.suggested_corners),
        proj=tuple(tuple(float(x) for x in row) for row in room.proj),
        name=room.name,
    )


def room_from_record(r: RoomV4) -> Room:
    return Room(
        id=r.id,
        planes=tuple(plane_from_record(p) for p in r.planes),
        cloud=cloud_from_record(r.cloud),
        corners=r.corners,
        suggested_corners=r.suggested_corners,
        proj=np.array(r.proj, dtype=float),
        name=r.name,
    )


def relation_to_record(relation: WallRelation) -> WallRelationV2:
    if isinstance(relation, Opposite):
        return WallRelationV2(kind="opposite", gap=float(relation.gap))
    return WallRelationV2(kind="same")


def relation_from_record(r: WallRelationV2) -> WallRelation:
    if r.kind == "opposite":
        return Opposite(gap=r.gap)
    return Same()


def connection_from_record(c: ConnectionRecord) -> WallConnection:
    try:
        axis = Axis(c.axis)
    except ValueError as exc:
        raise SaveFormatError(f"unknown wall connection axis {c.axis!r}") from exc
    a, b = c.plane_ids
    return WallConnection(axis, relation_from_record(c.relation), a, b)


# -- payloads ---------------------------------------------------------------


def encode_save(store: SceneStore) -> Dict[str, Any]:
    return {
        "save_version": SAVE_VERSION,
        "rooms": {str(rid): room_to_record(r).to_payload() for rid, r in sorted(store.rooms.items())},
        "connected_walls": [
            {
                "axis": e.axis.value,
                "relation": relation_to_record(e.relation).to_payload(),
                "plane_ids": [e.plane_id_1, e.plane_id_2],
            }
            for e in store.walls.edges
        ],
    }


def _decode_versioned(d: Mapping[str, Any], shapes: Mapping[int, Any], label: str):
    version = d.get("version", 1)
    decoder = shapes.get(version)
    if decoder is None:
        raise SaveFormatError(f"unknown {label} version {version!r}")
    return decoder(d)


def _decode_rooms(rooms: Mapping[str, Any]) -> Dict[int, Any]:
    out: Dict[int, Any] = {}
    for key, payload in rooms.items():
        room = _decode_versioned(payload, ROOM_SHAPES, "room")
        if int(key) != room.id:
            raise SaveFormatError(f"room stored under key {key} has ID {room.id}")
        out[room.id] = room
    return out


def _decode_connections(items) -> Tuple[ConnectionRecord, ...]:
    out: List[ConnectionRecord] = []
    for item in items:
        a, b = item["plane_ids"]
        relation = _decode_versioned(item["relation"], WALL_RELATION_SHAPES, "wall relation")
        out.append(ConnectionRecord(axis=str(item["axis"]), relation=relation, plane_ids=(int(a), int(b))))
    return tuple(out)


def decode_save(data: Any, opposite_gap: float = LEGACY_OPPOSITE_GAP) -> SaveV2:
    """Decode a save payload of any known version and migrate it to the current shape."""
    if not isinstance(data, dict):
        raise SaveFormatError(f"save payload must be an object, got {type(data).__name__}")
    try:
        if "save_version" in data:
            version = data["save_version"]
            if version == 1:
                save: Any = SaveV1(rooms=_decode_rooms(data["rooms"]))
            elif version == 2:
                save = SaveV2(
                    rooms=_decode_rooms(data["rooms"]),
                    connected_walls=_decode_connections(data["connected_walls"]),
                )
            else:
                raise SaveFormatError(f"unknown save version {version!r}")
        else:
            # Oldest saves were a bare room map.
            save = SaveV1(rooms=_decode_rooms(data))
            log.info("Legacy load succeeded!")
    except SaveFormatError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SaveFormatError(f"malformed save payload: {exc!r}") from exc
    return migrate_save(save, opposite_gap)


def save_to_model(save: SaveV2) -> Tuple[Dict[int, Room], List[WallConnection]]:
    try:
        rooms = {rid: room_from_record(r) for rid, r in save.rooms.items()}
    except InvariantViolation as exc:
        raise SaveFormatError(f"inconsistent room in save: {exc}") from exc
    edges = [connection_from_record(c) for c in save.connected_walls]
    return rooms, edges


# -- files ------------------------------------------------------------------


def save_to(store: SceneStore, path, compress: bool = True) -> Path:
    path = Path(path)
    log.info("Saving rooms to %s", path)
    json_str = json.dumps(encode_save(store))
    if compress:
        with gzip.open(path, "wt", encoding="utf-8") as f:
            f.write(json_str)
    else:
        with open(path, "w", encoding="utf-8") as f:
            f.write(json_str)
    log.info("saved")
    return path


def read_save_file(path) -> Any:
    path = Path(path)
    try:
        try:
            with gzip.open(path, "rt", encoding="utf-8") as f:
                json_str = f.read()
        except gzip.BadGzipFile:
            with open(path, "r", encoding="utf-8") as f:
                json_str = f.read()
        return json.loads(json_str)
    except OSError as exc:
        raise SaveFormatError(f"Failed loading {path}: {exc}") from exc
    except (EOFError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SaveFormatError(f"Failed loading {path}: {exc}") from exc


def _assign_placeholder_corners(store: SceneStore, room: Room) -> Room:
    if not any(i == UNASSIGNED_ID for i, _ in room.corners):
        return room
    corners = tuple((store.gen_id() if i == UNASSIGNED_ID else i, p) for i, p in room.corners)
    return replace(room, corners=corners)


def load_save_into(store: SceneStore, save: SaveV2) -> List[int]:
    """
    Replace the store's rooms and wall connections with those of `save`.

    IDs in the save are shifted past everything this session has issued so
    they cannot collide with live entities. Returns the new room IDs.
    """
    rooms, edges = save_to_model(save)
    try:
        assert_unique_ids([i for r in rooms.values() for i in r.ids()], "saved entity")
    except InvariantViolation as exc:
        raise SaveFormatError(str(exc)) from exc

    n = store.ids.high_water
    bumped = [r.bump_ids_by(n) for r in rooms.values()]
    bumped_edges = [e.bump_ids_by(n) for e in edges]
    store.ids.advance_past(i for r in bumped for i in r.ids())
    bumped = [_assign_placeholder_corners(store, r) for r in bumped]

    plane_ids = {p.id for r in bumped for p in r.planes}
    for e in bumped_edges:
        if e.plane_id_1 not in plane_ids or e.plane_id_2 not in plane_ids:
            log.warning("wall connection %s refers to a plane not in the save", e.pair())

    store.replace_rooms({r.id: r for r in bumped}, bumped_edges)
    return sorted(r.id for r in bumped)


def load_from(store: SceneStore, path, opposite_gap: float = LEGACY_OPPOSITE_GAP) -> List[int]:
    """
    Load a save file into `store`. All-or-nothing: when the file cannot be
    read the store is left exactly as it was.
    """
    log.info("Loading rooms from %s", path)
    save = decode_save(read_save_file(path), opposite_gap)
    return load_save_into(store, save)
