from __future__ import annotations

from scanroom.config import DEFAULT_WALL_THICKNESS
from scanroom.project.schema import WallRelationV1, WallRelationV2

LEGACY_OPPOSITE_GAP = DEFAULT_WALL_THICKNESS


def migrate(old: WallRelationV1, opposite_gap: float = LEGACY_OPPOSITE_GAP) -> WallRelationV2:
    if old.kind == "opposite":
        return WallRelationV2(kind="opposite", gap=float(opposite_gap))
    return WallRelationV2(kind="same")
