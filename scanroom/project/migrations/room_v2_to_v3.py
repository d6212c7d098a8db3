from __future__ import annotations

from scanroom.project.schema import RoomV2, RoomV3

DEFAULT_ROOM_NAME = "ANON"


def migrate(old: RoomV2) -> RoomV3:
    return RoomV3(
        id=old.id,
        planes=old.planes,
        cloud=old.cloud,
        corners=old.corners,
        proj=old.proj,
        name=DEFAULT_ROOM_NAME,
    )
