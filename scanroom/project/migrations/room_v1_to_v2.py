from __future__ import annotations

from scanroom.project.schema import IDENTITY4, RoomV1, RoomV2


def migrate(old: RoomV1) -> RoomV2:
    # Rooms saved before transforms were tracked sit in their loaded pose.
    return RoomV2(
        id=old.id,
        planes=old.planes,
        cloud=old.cloud,
        corners=old.corners,
        proj=IDENTITY4,
    )
