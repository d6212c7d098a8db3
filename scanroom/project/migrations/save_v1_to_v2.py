from __future__ import annotations

from scanroom.project.schema import SaveV1, SaveV2


def migrate(old: SaveV1) -> SaveV2:
    return SaveV2(rooms=old.rooms, connected_walls=())
