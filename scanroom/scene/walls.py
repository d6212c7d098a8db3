from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from scanroom.config import DEFAULT_WALL_THICKNESS
from scanroom.core.errors import ScanroomInputError
from scanroom.core.ids import bump_id
from scanroom.geometry.plane import PlaneEq, plane_normal_axis_index


class Axis(str, Enum):
    X = "X"
    Y = "Y"
    Z = "Z"

    @property
    def index(self) -> int:
        return "XYZ".index(self.value)

    def unit(self) -> np.ndarray:
        v = np.zeros(3)
        v[self.index] = 1.0
        return v

    def component(self, point) -> float:
        return float(np.asarray(point, dtype=float)[self.index])

    def along(self, value: float) -> np.ndarray:
        return self.unit() * float(value)


AXES: Tuple[Axis, ...] = (Axis.X, Axis.Y, Axis.Z)


@dataclass(frozen=True)
class Same:
    """The two walls are the same physical wall, facing the same way."""


@dataclass(frozen=True)
class Opposite:
    """The two walls face each other, `gap` apart (the wall thickness)."""

    gap: float = DEFAULT_WALL_THICKNESS


WallRelation = Union[Same, Opposite]


def relation_gap(relation: WallRelation) -> float:
    if isinstance(relation, Opposite):
        return float(relation.gap)
    return 0.0


@dataclass(frozen=True)
class WallConnection:
    axis: Axis
    relation: WallRelation
    plane_id_1: int
    plane_id_2: int

    def pair(self) -> Tuple[int, int]:
        return (self.plane_id_1, self.plane_id_2)

    def matches(self, a: int, b: int) -> bool:
        return (self.plane_id_1, self.plane_id_2) in ((a, b), (b, a))

    def bump_ids_by(self, n: int) -> "WallConnection":
        return WallConnection(self.axis, self.relation, bump_id(self.plane_id_1, n), bump_id(self.plane_id_2, n))


def infer_axis(eq1: PlaneEq, eq2: PlaneEq) -> Optional[Axis]:
    """Shared dominant world axis of two plane normals, or None if they disagree."""
    a1 = plane_normal_axis_index(eq1)
    a2 = plane_normal_axis_index(eq2)
    if a1 != a2:
        return None
    return AXES[a1]


class WallGraph:
    """
    Declared relations between wall planes of different rooms.

    Edges are constraints only; nothing moves until the optimizer runs. The
    edge list is replaced whole on every change.
    """

    def __init__(self, edges: Iterable[WallConnection] = ()) -> None:
        self._edges: Tuple[WallConnection, ...] = tuple(edges)

    @property
    def edges(self) -> Tuple[WallConnection, ...]:
        return self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def find(self, a: int, b: int) -> Optional[WallConnection]:
        for e in self._edges:
            if e.matches(a, b):
                return e
        return None

    def connect(self, plane_id_1: int, eq1: PlaneEq, plane_id_2: int, eq2: PlaneEq, relation: WallRelation) -> bool:
        """
        Add an edge between two walls. Returns False if the pair is already
        connected (the existing edge is kept).
        """
        if plane_id_1 == plane_id_2:
            raise ScanroomInputError("cannot connect a wall to itself")
        axis = infer_axis(eq1, eq2)
        if axis is None:
            raise ScanroomInputError(
                f"Could not infer axis of wall connection between planes {plane_id_1} and {plane_id_2}"
            )
        if self.find(plane_id_1, plane_id_2) is not None:
            return False
        self._edges = (WallConnection(axis, relation, plane_id_1, plane_id_2),) + self._edges
        return True

    def disconnect(self, plane_id_1: int, plane_id_2: int) -> int:
        kept = tuple(e for e in self._edges if not e.matches(plane_id_1, plane_id_2))
        removed = len(self._edges) - len(kept)
        self._edges = kept
        return removed

    def drop_planes(self, plane_ids: Iterable[int]) -> int:
        dropped = set(plane_ids)
        kept = tuple(e for e in self._edges if e.plane_id_1 not in dropped and e.plane_id_2 not in dropped)
        removed = len(self._edges) - len(kept)
        self._edges = kept
        return removed

    def on_axis(self, axis: Axis) -> List[WallConnection]:
        return [e for e in self._edges if e.axis == axis]

    def replace_all(self, edges: Iterable[WallConnection]) -> None:
        self._edges = tuple(edges)

    def clear(self) -> None:
        self._edges = ()
