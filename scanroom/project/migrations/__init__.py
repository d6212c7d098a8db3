"""Forward migrations between persisted shapes."""

from __future__ import annotations

from scanroom.project.migrations.room_v1_to_v2 import migrate as migrate_room_v1_to_v2
from scanroom.project.migrations.room_v2_to_v3 import migrate as migrate_room_v2_to_v3
from scanroom.project.migrations.room_v3_to_v4 import migrate as migrate_room_v3_to_v4
from scanroom.project.migrations.save_v1_to_v2 import migrate as migrate_save_v1_to_v2
from scanroom.project.migrations.wall_relation_v1_to_v2 import (
    LEGACY_OPPOSITE_GAP,
    migrate as migrate_wall_relation_v1_to_v2,
)
from scanroom.project.schema import (
    AnyRoom,
    AnyWallRelation,
    ConnectionRecord,
    RoomV1,
    RoomV2,
    RoomV3,
    RoomV4,
    SaveV1,
    SaveV2,
    WallRelationV1,
    WallRelationV2,
)


def migrate_room(room: AnyRoom) -> RoomV4:
    if isinstance(room, RoomV1):
        room = migrate_room_v1_to_v2(room)
    if isinstance(room, RoomV2):
        room = migrate_room_v2_to_v3(room)
    if isinstance(room, RoomV3):
        room = migrate_room_v3_to_v4(room)
    return room


def migrate_wall_relation(relation: AnyWallRelation, opposite_gap: float = LEGACY_OPPOSITE_GAP) -> WallRelationV2:
    if isinstance(relation, WallRelationV1):
        relation = migrate_wall_relation_v1_to_v2(relation, opposite_gap)
    return relation


def migrate_save(save, opposite_gap: float = LEGACY_OPPOSITE_GAP) -> SaveV2:
    """Bring a save and everything inside it up to the current shapes."""
    if isinstance(save, SaveV1):
        save = migrate_save_v1_to_v2(save)
    return SaveV2(
        rooms={rid: migrate_room(r) for rid, r in save.rooms.items()},
        connected_walls=tuple(
            ConnectionRecord(c.axis, migrate_wall_relation(c.relation, opposite_gap), c.plane_ids)
            for c in save.connected_walls
        ),
    )


__all__ = [
    "LEGACY_OPPOSITE_GAP",
    "migrate_room",
    "migrate_save",
    "migrate_wall_relation",
]
