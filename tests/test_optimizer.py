from __future__ import annotations

import pytest

from scanroom.core.errors import ScanroomInputError
from scanroom.ops import connect_walls, optimize_room_positions
from scanroom.scene.walls import Axis, Opposite, Same


def test_opposite_walls_end_up_one_gap_apart(store, make_box_room) -> None:
    r1 = make_box_room(store, with_corners=True)
    r2 = make_box_room(store, center=(5.0, 0.3, 0.0), with_corners=True)
    # +X face of room 1 against the -X face of room 2.
    connect_walls(store, r1.planes[0].id, r2.planes[1].id, Opposite(0.1))

    report = optimize_room_positions(store)

    assert not report.failed
    [comp] = report.for_axis(Axis.X)
    assert comp.anchor_room_id == r1.id
    assert comp.rmse == pytest.approx(0.0, abs=1e-12)
    moved = store.rooms[r2.id]
    assert moved.corner_mean() == pytest.approx([2.1, 0.3, 0.0])
    assert store.rooms[r1.id].corner_mean() == pytest.approx([0.0, 0.0, 0.0])
    wall_1 = store.rooms[r1.id].plane(r1.planes[0].id)
    wall_2 = moved.plane(r2.planes[1].id)
    assert wall_2.mean()[0] - wall_1.mean()[0] == pytest.approx(0.1)
    assert moved.proj[0, 3] == pytest.approx(-2.9)


def test_same_wall_on_each_axis(store, make_box_room) -> None:
    r1 = make_box_room(store, with_corners=True)
    r2 = make_box_room(store, center=(1.5, 4.0, 0.2), with_corners=True)
    # Both floors (-Y faces) describe the same floor.
    connect_walls(store, r1.planes[3].id, r2.planes[3].id, Same())
    optimize_room_positions(store)
    assert store.rooms[r2.id].corner_mean() == pytest.approx([1.5, 0.0, 0.2])


def test_independent_clusters_do_not_collapse(store, make_box_room) -> None:
    a = make_box_room(store, with_corners=True)
    b = make_box_room(store, center=(3.0, 0.0, 0.0), with_corners=True)
    c = make_box_room(store, center=(20.0, 0.0, 0.0), with_corners=True)
    d = make_box_room(store, center=(23.5, 0.0, 0.0), with_corners=True)
    connect_walls(store, a.planes[0].id, b.planes[1].id, Same())
    connect_walls(store, c.planes[0].id, d.planes[1].id, Same())

    report = optimize_room_positions(store)

    assert len(report.for_axis(Axis.X)) == 2
    xs = {r.id: store.rooms[r.id].corner_mean()[0] for r in (a, b, c, d)}
    assert xs[b.id] == pytest.approx(2.0)
    assert xs[c.id] == pytest.approx(20.0)
    assert xs[d.id] == pytest.approx(22.0)


def test_unconnected_axes_are_left_alone(store, make_box_room) -> None:
    r1 = make_box_room(store, with_corners=True)
    r2 = make_box_room(store, center=(5.0, 0.3, 0.7), with_corners=True)
    connect_walls(store, r1.planes[0].id, r2.planes[1].id, Same())
    report = optimize_room_positions(store)
    assert report.for_axis(Axis.Y) == [] and report.for_axis(Axis.Z) == []
    assert store.rooms[r2.id].corner_mean()[1:] == pytest.approx([0.3, 0.7])


def test_rooms_without_corners_are_refused_before_anything_moves(store, make_box_room) -> None:
    r1 = make_box_room(store, with_corners=True)
    r2 = make_box_room(store, center=(5.0, 0.0, 0.0))
    connect_walls(store, r1.planes[0].id, r2.planes[1].id, Same())
    with pytest.raises(ScanroomInputError, match="no corners"):
        optimize_room_positions(store)
    assert store.rooms[r2.id].cloud.mean() == pytest.approx([5.0, 0.0, 0.0])
    assert store.history[-1]["action"] == "ops.connect_walls"


def test_optimize_without_connections_is_a_no_op(store, make_box_room) -> None:
    make_box_room(store, with_corners=True)
    report = optimize_room_positions(store)
    assert report.components == ()
