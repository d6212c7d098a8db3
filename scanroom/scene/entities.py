"""
Scene entities: clouds, planes and rooms.

Entities are immutable; every edit builds a new value with
``dataclasses.replace`` and writes it back to the store whole. Point-bearing
fields are ``(n, 3)`` float arrays, corners are ``(id, (x, y, z))`` pairs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple, Union

import numpy as np

from scanroom.core.errors import InvariantViolation
from scanroom.core.ids import UNASSIGNED_ID, assert_unique_ids, bump_id
from scanroom.geometry.plane import PlaneEq, Vec3, as_points, point_mean
from scanroom.geometry.transform import identity


Color3 = Tuple[float, float, float]
Corner = Tuple[int, Vec3]

RED: Color3 = (1.0, 0.0, 0.0)


def random_color(rng: Optional[np.random.Generator] = None) -> Color3:
    g = rng or np.random.default_rng()
    r, gr, b = g.random(3)
    return (float(r), float(gr), float(b))


@dataclass(frozen=True, eq=False)
class OneColor:
    rgb: Color3 = RED


@dataclass(frozen=True, eq=False)
class ManyColors:
    rgb: np.ndarray  # (n, 3), one per cloud point


CloudColor = Union[OneColor, ManyColors]


@dataclass(frozen=True, eq=False)
class Cloud:
    id: int
    color: CloudColor
    points: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", as_points(self.points))
        if isinstance(self.color, ManyColors):
            colors = as_points(self.color.rgb)
            if len(colors) != len(self.points):
                raise InvariantViolation(
                    f"cloud {self.id}: {len(colors)} colors for {len(self.points)} points"
                )
            object.__setattr__(self, "color", ManyColors(rgb=colors))

    def ids(self) -> List[int]:
        return [self.id]

    def bump_ids_by(self, n: int) -> "Cloud":
        return replace(self, id=bump_id(self.id, n))

    def mean(self) -> np.ndarray:
        return point_mean(self.points)


@dataclass(frozen=True, eq=False)
class Plane:
    id: int
    eq: PlaneEq
    color: Color3
    bounds: np.ndarray  # boundary polygon lying on the plane

    def __post_init__(self) -> None:
        object.__setattr__(self, "bounds", as_points(self.bounds))

    @property
    def normal(self) -> np.ndarray:
        return self.eq.normal_array()

    def ids(self) -> List[int]:
        return [self.id]

    def bump_ids_by(self, n: int) -> "Plane":
        return replace(self, id=bump_id(self.id, n))

    def mean(self) -> np.ndarray:
        return point_mean(self.bounds)


def _bump_corner(corner: Corner, n: int) -> Corner:
    cid, p = corner
    if cid == UNASSIGNED_ID:
        return corner
    return (bump_id(cid, n), p)


@dataclass(frozen=True, eq=False)
class Room:
    id: int
    planes: Tuple[Plane, ...]
    cloud: Cloud
    corners: Tuple[Corner, ...] = ()
    suggested_corners: Tuple[Corner, ...] = ()
    proj: np.ndarray = field(default_factory=identity)
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "planes", tuple(self.planes))
        object.__setattr__(self, "corners", tuple((int(i), _vec(p)) for i, p in self.corners))
        object.__setattr__(self, "suggested_corners", tuple((int(i), _vec(p)) for i, p in self.suggested_corners))
        object.__setattr__(self, "proj", np.asarray(self.proj, dtype=float).reshape(4, 4))
        assert_unique_ids([p.id for p in self.planes], f"room {self.id} plane")
        accepted = {i for i, _ in self.corners if i != UNASSIGNED_ID}
        suggested = {i for i, _ in self.suggested_corners}
        if accepted & suggested:
            raise InvariantViolation(
                f"room {self.id}: corners {sorted(accepted & suggested)} are both accepted and suggested"
            )

    def ids(self) -> List[int]:
        out = [self.id]
        for p in self.planes:
            out.extend(p.ids())
        out.extend(self.cloud.ids())
        out.extend(i for i, _ in self.corners if i != UNASSIGNED_ID)
        out.extend(i for i, _ in self.suggested_corners)
        return out

    def bump_ids_by(self, n: int) -> "Room":
        return replace(
            self,
            id=bump_id(self.id, n),
            planes=tuple(p.bump_ids_by(n) for p in self.planes),
            cloud=self.cloud.bump_ids_by(n),
            corners=tuple(_bump_corner(c, n) for c in self.corners),
            suggested_corners=tuple(_bump_corner(c, n) for c in self.suggested_corners),
        )

    def plane(self, plane_id: int) -> Plane:
        for p in self.planes:
            if p.id == plane_id:
                return p
        raise KeyError(plane_id)

    def has_plane(self, plane_id: int) -> bool:
        return any(p.id == plane_id for p in self.planes)

    def mean(self) -> np.ndarray:
        """Rooms rotate about the mean of their cloud."""
        return self.cloud.mean()

    def corner_mean(self) -> np.ndarray:
        return point_mean([p for _, p in self.corners])

    def corner_points(self) -> np.ndarray:
        return as_points([p for _, p in self.corners])


def _vec(p) -> Vec3:
    a = np.asarray(p, dtype=float).reshape(3)
    return (float(a[0]), float(a[1]), float(a[2]))
