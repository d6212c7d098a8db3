from __future__ import annotations

import pytest

from scanroom.core.errors import ScanroomInputError
from scanroom.geometry.plane import make_plane_eq
from scanroom.scene.walls import Axis, Opposite, Same, WallGraph, infer_axis, relation_gap

X1 = make_plane_eq((1.0, 0.1, 0.0), 1.0)
X2 = make_plane_eq((-1.0, 0.0, 0.2), 3.0)
Y1 = make_plane_eq((0.0, 1.0, 0.0), 0.0)


def test_infer_axis_from_dominant_normal_component() -> None:
    assert infer_axis(X1, X2) is Axis.X
    assert infer_axis(X1, Y1) is None


def test_connect_is_idempotent_and_prepends() -> None:
    g = WallGraph()
    assert g.connect(1, X1, 2, X2, Opposite(0.2))
    assert g.connect(3, Y1, 4, Y1, Same())
    assert not g.connect(2, X2, 1, X1, Same())
    assert [e.pair() for e in g.edges] == [(3, 4), (1, 2)]
    assert g.find(2, 1).relation == Opposite(0.2)


def test_connect_rejects_mismatched_axes_and_self_loops() -> None:
    g = WallGraph()
    with pytest.raises(ScanroomInputError, match="Could not infer axis"):
        g.connect(1, X1, 2, Y1, Same())
    with pytest.raises(ScanroomInputError, match="itself"):
        g.connect(1, X1, 1, X1, Same())
    assert len(g) == 0


def test_disconnect_in_either_order() -> None:
    g = WallGraph()
    g.connect(1, X1, 2, X2, Same())
    assert g.disconnect(2, 1) == 1
    assert g.disconnect(2, 1) == 0


def test_on_axis_and_drop_planes() -> None:
    g = WallGraph()
    g.connect(1, X1, 2, X2, Same())
    g.connect(3, Y1, 4, Y1, Same())
    assert [e.pair() for e in g.on_axis(Axis.Y)] == [(3, 4)]
    assert g.drop_planes([4, 99]) == 1
    assert [e.pair() for e in g.edges] == [(1, 2)]


def test_relation_gap() -> None:
    assert relation_gap(Same()) == 0.0
    assert relation_gap(Opposite(0.25)) == 0.25
    assert Opposite().gap == pytest.approx(0.1)


def test_bumped_connection_moves_both_ends() -> None:
    g = WallGraph()
    g.connect(1, X1, 2, X2, Same())
    e = g.edges[0].bump_ids_by(10)
    assert e.pair() == (11, 12)
    assert e.axis is Axis.X
