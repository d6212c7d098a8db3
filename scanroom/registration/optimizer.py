"""
Room position optimisation from declared wall connections.

Translations along different world axes never interact, so each axis is
solved on its own, and within an axis each connected component of the room
graph is solved on its own. Pooling disconnected components into a single
solve leaves the system underconstrained: independent clusters (say A-B and
C-D) get pulled onto a shared arbitrary origin and collapse onto each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from scanroom.core.errors import ScanroomInputError, SingularSystemError
from scanroom.registration.lstsq import (
    OffsetConstraint,
    group_connected_components,
    lst_sq_distances,
)
from scanroom.scene.entities import Plane, Room
from scanroom.scene.store import SceneStore
from scanroom.scene.transforms import translate
from scanroom.scene.walls import AXES, Axis, WallConnection, relation_gap

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectedWalls:
    connection: WallConnection
    plane_1: Plane
    plane_2: Plane
    room_1: Room
    room_2: Room


@dataclass(frozen=True)
class ComponentResult:
    axis: Axis
    room_ids: Tuple[int, ...]
    anchor_room_id: int
    rmse: Optional[float] = None
    deltas: Dict[int, float] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OptimizationReport:
    components: Tuple[ComponentResult, ...]

    def for_axis(self, axis: Axis) -> List[ComponentResult]:
        return [c for c in self.components if c.axis == axis]

    @property
    def failed(self) -> List[ComponentResult]:
        return [c for c in self.components if not c.ok]


def room_center_offset_from_walls(r1: Room, r2: Room, p1: Plane, p2: Plane, axis: Axis) -> float:
    """
    Signed offset from room 1's center to room 2's center that would make the
    two walls coincide. Assumes rooms are cuboids, centered at their corner mean.
    """
    d = (p1.mean() - r1.corner_mean()) - (p2.mean() - r2.corner_mean())
    return axis.component(d)


def desired_center_offset(walls: ConnectedWalls, axis: Axis) -> float:
    o = room_center_offset_from_walls(walls.room_1, walls.room_2, walls.plane_1, walls.plane_2, axis)
    return o + float(np.sign(o)) * relation_gap(walls.connection.relation)


def resolve_connections(store: SceneStore) -> List[ConnectedWalls]:
    """Look up the walls and rooms of every connection; all must exist and have corners."""
    out: List[ConnectedWalls] = []
    for conn in store.walls.edges:
        r1 = store.find_room_containing_plane(conn.plane_id_1)
        r2 = store.find_room_containing_plane(conn.plane_id_2)
        if r1 is None or r2 is None:
            raise ScanroomInputError(
                f"wall connection {conn.pair()} refers to a plane that is not a room wall"
            )
        for r in (r1, r2):
            if not r.corners:
                raise ScanroomInputError(f"room {r.id} in position optimization has no corners")
        out.append(ConnectedWalls(conn, r1.plane(conn.plane_id_1), r2.plane(conn.plane_id_2), r1, r2))
    return out


def axis_constraints(store: SceneStore, axis: Axis) -> List[OffsetConstraint]:
    """Desired room-center offsets along `axis`, in wall-graph edge order."""
    return [
        (w.room_1.id, w.room_2.id, desired_center_offset(w, axis))
        for w in resolve_connections(store)
        if w.connection.axis == axis
    ]


def optimize_axis(store: SceneStore, axis: Axis) -> List[ComponentResult]:
    constraints = axis_constraints(store, axis)
    if not constraints:
        log.info("Don't need to align along %s axis", axis.value)
        return []

    components = group_connected_components(constraints)
    log.info("Aligning the %s axis (%d components)", axis.value, len(components))

    results: List[ComponentResult] = []
    for comp in components:
        anchor = comp[0][0]
        room_ids = tuple(dict.fromkeys(n for a, b, _ in comp for n in (a, b)))
        try:
            solution = lst_sq_distances(comp, anchor=anchor)
        except SingularSystemError as exc:
            log.warning("optimize_room_positions: singular %s component %s: %s", axis.value, room_ids, exc)
            results.append(ComponentResult(axis, room_ids, anchor, error=str(exc)))
            continue

        log.info("Aligned component of %s axis with RMSE %.3f", axis.value, solution.rmse)

        # Keep the anchor room where it was; the solver placed it at 0.
        anchor_coord = axis.component(store.require_room(anchor).corner_mean())
        deltas: Dict[int, float] = {}
        for rid, pos in solution.positions.items():
            room = store.require_room(rid)
            delta = (pos + anchor_coord) - axis.component(room.corner_mean())
            deltas[rid] = delta
            store.update_room(translate(room, axis.along(delta)))
        results.append(ComponentResult(axis, room_ids, anchor, rmse=solution.rmse, deltas=deltas))
    return results


def optimize_room_positions(store: SceneStore) -> OptimizationReport:
    # Surface missing planes or corners before anything moves.
    resolve_connections(store)
    results: List[ComponentResult] = []
    for axis in AXES:
        results.extend(optimize_axis(store, axis))
    return OptimizationReport(components=tuple(results))
