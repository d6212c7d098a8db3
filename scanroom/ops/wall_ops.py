from __future__ import annotations

import logging
from typing import Optional, Tuple

from scanroom.core.errors import ScanroomInputError
from scanroom.ops.base import OpContext, execute_op
from scanroom.registration.optimizer import OptimizationReport, optimize_room_positions as _optimize
from scanroom.scene.entities import Room
from scanroom.scene.store import SceneStore
from scanroom.scene.walls import WallRelation, infer_axis

log = logging.getLogger(__name__)


def _walls_of_different_rooms(store: SceneStore, plane_id_1: int, plane_id_2: int) -> Tuple[Room, Room]:
    r1 = store.find_room_containing_plane(plane_id_1)
    r2 = store.find_room_containing_plane(plane_id_2)
    if r1 is None or r2 is None or r1.id == r2.id:
        raise ScanroomInputError(f"The planes {(plane_id_1, plane_id_2)} are not walls of different rooms!")
    return r1, r2


def connect_walls(
    store: SceneStore,
    plane_id_1: int,
    plane_id_2: int,
    relation: WallRelation,
    ctx: Optional[OpContext] = None,
) -> bool:
    """
    Declare that two walls of different rooms are related (the same wall, or
    the two faces of one wall). Returns False if they were already connected.
    """

    def _validate() -> None:
        r1, r2 = _walls_of_different_rooms(store, plane_id_1, plane_id_2)
        if infer_axis(r1.plane(plane_id_1).eq, r2.plane(plane_id_2).eq) is None:
            raise ScanroomInputError("Could not guess axis of wall connection")

    def _mutate() -> bool:
        r1, r2 = _walls_of_different_rooms(store, plane_id_1, plane_id_2)
        log.info("Connecting rooms %s via wall planes %s", (r1.id, r2.id), (plane_id_1, plane_id_2))
        return store.walls.connect(plane_id_1, r1.plane(plane_id_1).eq, plane_id_2, r2.plane(plane_id_2).eq, relation)

    return execute_op(
        store,
        op_name="connect_walls",
        args={"plane_ids": [plane_id_1, plane_id_2], "relation": repr(relation)},
        ctx=ctx,
        validate=_validate,
        mutate=_mutate,
    )


def disconnect_walls(store: SceneStore, plane_id_1: int, plane_id_2: int, ctx: Optional[OpContext] = None) -> int:
    """Remove the connection between two walls, in either order. Returns how many edges went."""

    def _mutate() -> int:
        log.info("Disconnecting walls %s", (plane_id_1, plane_id_2))
        return store.walls.disconnect(plane_id_1, plane_id_2)

    return execute_op(
        store,
        op_name="disconnect_walls",
        args={"plane_ids": [plane_id_1, plane_id_2]},
        ctx=ctx,
        validate=None,
        mutate=_mutate,
    )


def optimize_room_positions(store: SceneStore, ctx: Optional[OpContext] = None) -> OptimizationReport:
    """
    Move rooms so connected walls line up. Components whose system is
    singular are reported and left in place; the rest still move.
    """
    return execute_op(
        store,
        op_name="optimize_room_positions",
        args={"connections": len(store.walls)},
        ctx=ctx,
        validate=None,
        mutate=lambda: _optimize(store),
    )
