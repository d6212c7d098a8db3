from scanroom.ops.base import OpContext, execute_op
from scanroom.ops.corner_ops import (
    CornerPlacement,
    accept_corner_suggestion,
    add_corner_from_planes,
    suggest_corners,
)
from scanroom.ops.plane_ops import (
    add_plane,
    delete_plane,
    duplicate_plane,
    move_wall,
    plane_from_points,
    rotate_plane_onto,
)
from scanroom.ops.room_ops import (
    apply_room_projection,
    auto_align_and_rotate,
    auto_align_axis,
    auto_align_floor,
    clear_rooms,
    fit_cuboid_to_room,
    load_room,
    make_room_points_pickable,
    move_all_rooms,
    move_room,
    remove_ceiling,
    swap_room_positions,
)
from scanroom.ops.wall_ops import connect_walls, disconnect_walls, optimize_room_positions

__all__ = [
    "OpContext",
    "execute_op",
    "CornerPlacement",
    "accept_corner_suggestion",
    "add_corner_from_planes",
    "suggest_corners",
    "add_plane",
    "delete_plane",
    "duplicate_plane",
    "move_wall",
    "plane_from_points",
    "rotate_plane_onto",
    "apply_room_projection",
    "auto_align_and_rotate",
    "auto_align_axis",
    "auto_align_floor",
    "clear_rooms",
    "fit_cuboid_to_room",
    "load_room",
    "make_room_points_pickable",
    "move_all_rooms",
    "move_room",
    "remove_ceiling",
    "swap_room_positions",
    "connect_walls",
    "disconnect_walls",
    "optimize_room_positions",
]
