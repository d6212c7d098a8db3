from scanroom.scene.entities import Cloud, ManyColors, OneColor, Plane, Room
from scanroom.scene.store import SceneStore
from scanroom.scene.transforms import project_room, rotate, rotate_around, translate
from scanroom.scene.walls import AXES, Axis, Opposite, Same, WallConnection, WallGraph

__all__ = [
    "AXES",
    "Axis",
    "Cloud",
    "ManyColors",
    "OneColor",
    "Opposite",
    "Plane",
    "Room",
    "Same",
    "SceneStore",
    "WallConnection",
    "WallGraph",
    "project_room",
    "rotate",
    "rotate_around",
    "translate",
]
