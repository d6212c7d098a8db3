from __future__ import annotations

from scanroom.core.ids import UNASSIGNED_ID
from scanroom.project.schema import RoomV3, RoomV4


def migrate(old: RoomV3) -> RoomV4:
    # Corners had no IDs before v4. They get UNASSIGNED_ID here and fresh IDs
    # when the save is loaded into a store.
    return RoomV4(
        id=old.id,
        planes=old.planes,
        cloud=old.cloud,
        corners=tuple((UNASSIGNED_ID, p) for p in old.corners),
        suggested_corners=(),
        proj=old.proj,
        name=old.name,
    )
