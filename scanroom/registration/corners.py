from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations
from typing import List, Sequence, Tuple

import numpy as np

from scanroom.config import DEFAULT_SUGGESTION_CUTOFF_FACTOR
from scanroom.core.errors import ScanroomInputError
from scanroom.geometry.plane import PlaneEq, intersect_three_planes
from scanroom.scene.entities import Corner, Room

log = logging.getLogger(__name__)

DEFAULT_CUTOFF_FACTOR = DEFAULT_SUGGESTION_CUTOFF_FACTOR


@dataclass(frozen=True)
class CornerSuggestions:
    corners: Tuple[Corner, ...]
    candidates: int
    auto_accepted: bool


def candidate_corners(eqs: Sequence[PlaneEq]) -> Tuple[List[np.ndarray], int]:
    """
    Intersections of every triple of planes; triples without a unique
    intersection are skipped. Returns the points and how many triples failed.
    """
    points: List[np.ndarray] = []
    degenerate = 0
    for a, b, c in combinations(eqs, 3):
        p = intersect_three_planes(a, b, c)
        if p is None:
            degenerate += 1
            continue
        points.append(p)
    return points, degenerate


def suggestion_cutoff(room: Room, cutoff_factor: float) -> float:
    """`cutoff_factor` times the largest distance of a cloud point from the room mean."""
    pts = room.cloud.points
    if len(pts) == 0:
        raise ScanroomInputError(f"room {room.id} has an empty cloud; cannot suggest corners")
    center = room.mean()
    return float(cutoff_factor) * float(np.max(np.linalg.norm(pts - center, axis=1)))


def corners_near_room(room: Room, cutoff_factor: float = DEFAULT_CUTOFF_FACTOR) -> List[np.ndarray]:
    """
    Plane-triple intersections close enough to the room to be real corners.

    Near-parallel or non-adjacent triples intersect far outside the scan and
    are dropped by the distance cutoff.
    """
    if len(room.planes) < 3:
        raise ScanroomInputError(f"room {room.id} has {len(room.planes)} planes, need at least 3")
    cutoff = suggestion_cutoff(room, cutoff_factor)
    center = room.mean()
    points, degenerate = candidate_corners([p.eq for p in room.planes])
    if degenerate:
        log.debug("room %s: %d plane triples do not intersect", room.id, degenerate)
    return [p for p in points if float(np.linalg.norm(p - center)) <= cutoff]
