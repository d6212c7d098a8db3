"""
Persisted shapes of the save file, one frozen type per historical version.

These types are plain data and never change once released: a new save shape
gets a new type plus a migration from its predecessor (see
``scanroom.project.migrations``). Only the newest shape of each type is ever
written; older ones are only read.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Tuple, Union

import numpy as np

from scanroom.core.errors import SaveFormatError

Vec3 = Tuple[float, float, float]
Color3 = Tuple[float, float, float]
Matrix4 = Tuple[Tuple[float, float, float, float], ...]

SAVE_VERSION = 2
ROOM_VERSION = 4
WALL_RELATION_VERSION = 2

POINTS_DTYPE = "<f4"
BOUNDS_DTYPE = "<f8"

IDENTITY4: Matrix4 = (
    (1.0, 0.0, 0.0, 0.0),
    (0.0, 1.0, 0.0, 0.0),
    (0.0, 0.0, 1.0, 0.0),
    (0.0, 0.0, 0.0, 1.0),
)


# -- arrays -----------------------------------------------------------------


def encode_array(arr: np.ndarray, dtype: str = BOUNDS_DTYPE) -> Dict[str, Any]:
    a = np.ascontiguousarray(np.asarray(arr, dtype=dtype))
    return {
        "dtype": dtype,
        "shape": list(a.shape),
        "b64": base64.b64encode(a.tobytes()).decode("ascii"),
    }


def decode_array(obj: Mapping[str, Any]) -> np.ndarray:
    try:
        dtype = np.dtype(obj["dtype"])
        shape = tuple(int(s) for s in obj["shape"])
        raw = base64.b64decode(obj["b64"].encode("ascii"), validate=True)
    except (KeyError, TypeError, ValueError) as exc:
        raise SaveFormatError(f"bad embedded array: {exc}") from exc
    if dtype.kind != "f":
        raise SaveFormatError(f"embedded arrays must be floating point, got {dtype}")
    expected = int(np.prod(shape)) * dtype.itemsize
    if len(raw) != expected:
        raise SaveFormatError(f"embedded array has {len(raw)} bytes, shape {shape} needs {expected}")
    return np.frombuffer(raw, dtype=dtype).reshape(shape).astype(float)


def _vec3(v) -> Vec3:
    if len(v) != 3:
        raise SaveFormatError(f"expected 3 coordinates, got {len(v)}")
    return (float(v[0]), float(v[1]), float(v[2]))


def _matrix4(rows) -> Matrix4:
    if len(rows) != 4 or any(len(r) != 4 for r in rows):
        raise SaveFormatError("room transform must be a 4x4 matrix")
    return tuple(tuple(float(x) for x in r) for r in rows)


# -- unversioned records ----------------------------------------------------


@dataclass(frozen=True, eq=False)
class PlaneRecord:
    id: int
    normal: Vec3
    offset: float
    color: Color3
    bounds: np.ndarray

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "normal": list(self.normal),
            "offset": self.offset,
            "color": list(self.color),
            "bounds": encode_array(self.bounds, BOUNDS_DTYPE),
        }

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "PlaneRecord":
        return cls(
            id=int(d["id"]),
            normal=_vec3(d["normal"]),
            offset=float(d["offset"]),
            color=_vec3(d["color"]),
            bounds=decode_array(d["bounds"]),
        )


@dataclass(frozen=True, eq=False)
class CloudRecord:
    id: int
    points: np.ndarray
    color: Optional[Color3] = None  # one colour for the whole cloud
    colors: Optional[np.ndarray] = None  # or one per point

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "points": encode_array(self.points, POINTS_DTYPE)}
        if self.colors is not None:
            out["colors"] = encode_array(self.colors, POINTS_DTYPE)
        else:
            out["color"] = list(self.color or (1.0, 0.0, 0.0))
        return out

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "CloudRecord":
        colors = decode_array(d["colors"]) if "colors" in d else None
        color = _vec3(d["color"]) if "color" in d else None
        if colors is None and color is None:
            raise SaveFormatError(f"cloud {d.get('id')} has neither color nor colors")
        return cls(id=int(d["id"]), points=decode_array(d["points"]), color=color, colors=colors)


def _planes_payload(planes: Tuple[PlaneRecord, ...]):
    return [p.to_payload() for p in planes]


def _planes_from(d: Mapping[str, Any]) -> Tuple[PlaneRecord, ...]:
    return tuple(PlaneRecord.from_payload(p) for p in d["planes"])


# -- Room -------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class RoomV1:
    id: int
    planes: Tuple[PlaneRecord, ...]
    cloud: CloudRecord
    corners: Tuple[Vec3, ...]

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "RoomV1":
        return cls(
            id=int(d["id"]),
            planes=_planes_from(d),
            cloud=CloudRecord.from_payload(d["cloud"]),
            corners=tuple(_vec3(c) for c in d["corners"]),
        )


@dataclass(frozen=True, eq=False)
class RoomV2:
    id: int
    planes: Tuple[PlaneRecord, ...]
    cloud: CloudRecord
    corners: Tuple[Vec3, ...]
    proj: Matrix4

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "RoomV2":
        v1 = RoomV1.from_payload(d)
        return cls(v1.id, v1.planes, v1.cloud, v1.corners, _matrix4(d["proj"]))


@dataclass(frozen=True, eq=False)
class RoomV3:
    id: int
    planes: Tuple[PlaneRecord, ...]
    cloud: CloudRecord
    corners: Tuple[Vec3, ...]
    proj: Matrix4
    name: str

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "RoomV3":
        v2 = RoomV2.from_payload(d)
        return cls(v2.id, v2.planes, v2.cloud, v2.corners, v2.proj, str(d["name"]))


@dataclass(frozen=True, eq=False)
class RoomV4:
    id: int
    planes: Tuple[PlaneRecord, ...]
    cloud: CloudRecord
    corners: Tuple[Tuple[int, Vec3], ...]
    suggested_corners: Tuple[Tuple[int, Vec3], ...]
    proj: Matrix4
    name: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "version": ROOM_VERSION,
            "id": self.id,
            "planes": _planes_payload(self.planes),
            "cloud": self.cloud.to_payload(),
            "corners": [[i, list(p)] for i, p in self.corners],
            "suggested_corners": [[i, list(p)] for i, p in self.suggested_corners],
            "proj": [list(r) for r in self.proj],
            "name": self.name,
        }

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "RoomV4":
        return cls(
            id=int(d["id"]),
            planes=_planes_from(d),
            cloud=CloudRecord.from_payload(d["cloud"]),
            corners=tuple((int(i), _vec3(p)) for i, p in d["corners"]),
            suggested_corners=tuple((int(i), _vec3(p)) for i, p in d["suggested_corners"]),
            proj=_matrix4(d["proj"]),
            name=str(d["name"]),
        )


AnyRoom = Union[RoomV1, RoomV2, RoomV3, RoomV4]

ROOM_SHAPES: Dict[int, Callable[[Mapping[str, Any]], AnyRoom]] = {
    1: RoomV1.from_payload,
    2: RoomV2.from_payload,
    3: RoomV3.from_payload,
    4: RoomV4.from_payload,
}


# -- WallRelation -----------------------------------------------------------

RelationKind = Literal["same", "opposite"]


@dataclass(frozen=True)
class WallRelationV1:
    kind: RelationKind

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "WallRelationV1":
        return cls(kind=_relation_kind(d))


@dataclass(frozen=True)
class WallRelationV2:
    kind: RelationKind
    gap: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"version": WALL_RELATION_VERSION, "kind": self.kind}
        if self.kind == "opposite":
            out["gap"] = self.gap
        return out

    @classmethod
    def from_payload(cls, d: Mapping[str, Any]) -> "WallRelationV2":
        kind = _relation_kind(d)
        gap = float(d["gap"]) if kind == "opposite" else 0.0
        return cls(kind=kind, gap=gap)


def _relation_kind(d: Mapping[str, Any]) -> RelationKind:
    kind = d["kind"]
    if kind not in ("same", "opposite"):
        raise SaveFormatError(f"unknown wall relation kind {kind!r}")
    return kind


AnyWallRelation = Union[WallRelationV1, WallRelationV2]

WALL_RELATION_SHAPES: Dict[int, Callable[[Mapping[str, Any]], AnyWallRelation]] = {
    1: WallRelationV1.from_payload,
    2: WallRelationV2.from_payload,
}


# -- Save -------------------------------------------------------------------


@dataclass(frozen=True)
class ConnectionRecord:
    axis: str
    relation: AnyWallRelation
    plane_ids: Tuple[int, int]


@dataclass(frozen=True)
class SaveV1:
    rooms: Mapping[int, AnyRoom]


@dataclass(frozen=True)
class SaveV2:
    rooms: Mapping[int, AnyRoom]
    connected_walls: Tuple[ConnectionRecord, ...]
