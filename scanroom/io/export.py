"""
Export of cumulative room transforms for external point cloud tools.

Room transforms are kept in the left-multiplicative form (``p' = M p``), which
is what ``plyxform`` and ``pcl_transform_point_cloud`` read, so matrices are
written row by row without transposing.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import List

from scanroom.geometry.transform import to_rows
from scanroom.scene.entities import Room
from scanroom.scene.store import SceneStore

log = logging.getLogger(__name__)

PCL_TRANSFORM_TOOL = "pcl_transform_point_cloud"


def _fmt(x: float) -> str:
    return repr(float(x))


def room_projection_to_string(room: Room) -> str:
    """The 16 entries of the room transform, row-major, comma separated."""
    return ",".join(_fmt(x) for row in to_rows(room.proj) for x in row)


def room_projection_to_xf(room: Room) -> str:
    """The room transform in ``.xf`` form: four lines of four numbers."""
    return "".join(" ".join(_fmt(x) for x in row) + "\n" for row in to_rows(room.proj))


def _source_dir_name(room: Room, levels: int = 1) -> str:
    parent = PurePath(room.name)
    for _ in range(levels):
        parent = parent.parent
    return parent.name


def xf_file_name(room: Room) -> str:
    """Named after the directory holding the room's source cloud."""
    stem = _source_dir_name(room) or f"room{room.id}"
    return f"{stem}.xf"


def export_all_room_xf_files(store: SceneStore, out_dir) -> List[Path]:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for rid in sorted(store.rooms):
        room = store.rooms[rid]
        path = out / xf_file_name(room)
        if path in written:
            log.warning("room %s overwrites %s written for another room", rid, path)
        log.info("Writing %s for room %s (%s)", path, rid, room.name)
        path.write_text(room_projection_to_xf(room), encoding="utf-8")
        written.append(path)
    return written


def pcl_transform_commands(store: SceneStore, tool: str = PCL_TRANSFORM_TOOL) -> List[str]:
    """One ``pcl_transform_point_cloud`` command line per room, in room ID order."""
    lines: List[str] = []
    for rid in sorted(store.rooms):
        room = store.rooms[rid]
        placed = f"{_source_dir_name(room, levels=2) or f'room{rid}'}-placed.pcd"
        lines.append(f"{tool} {room.name} {placed} -matrix {room_projection_to_string(room)}")
    return lines
