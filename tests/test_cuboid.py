from __future__ import annotations

from itertools import product

import numpy as np
import pytest

from scanroom.core.errors import GeometryDegeneracyError, ScanroomInputError
from scanroom.geometry.cuboid import (
    cuboid_corners,
    cuboid_faces,
    fit_cuboid,
    matrix_to_quaternion,
    quaternion_to_matrix,
)
from scanroom.geometry.plane import axis_angle_matrix, signed_distance
from scanroom.ops import connect_walls, fit_cuboid_to_room
from scanroom.scene.walls import Same


def _rotated_box(center, half, rot):
    local = np.array([np.array(s) * half for s in product((-1.0, 1.0), repeat=3)])
    return np.asarray(center) + local @ rot.T


def test_quaternion_round_trip() -> None:
    rot = axis_angle_matrix((1.0, -2.0, 0.5), 2.9)
    assert quaternion_to_matrix(matrix_to_quaternion(rot)) == pytest.approx(rot)


def test_fit_recovers_rotated_box_in_input_order() -> None:
    rot = axis_angle_matrix((0.3, 1.0, 0.2), 0.8)
    pts = _rotated_box((2.0, -1.0, 0.5), np.array([2.0, 1.0, 0.5]), rot)
    pts = pts[[5, 2, 7, 0, 3, 6, 1, 4]]
    fit = fit_cuboid(pts)
    assert sorted(fit.half_extents) == pytest.approx([0.5, 1.0, 2.0])
    assert fit.center == pytest.approx([2.0, -1.0, 0.5])
    assert fit.rmse == pytest.approx(0.0, abs=1e-6)
    assert cuboid_corners(fit) == pytest.approx(pts, abs=1e-6)


def test_fit_smooths_noisy_corners() -> None:
    rng = np.random.default_rng(3)
    pts = _rotated_box((0.0, 0.0, 0.0), np.array([3.0, 1.5, 1.2]), np.eye(3))
    noisy = pts + rng.normal(0.0, 0.01, size=pts.shape)
    fit = fit_cuboid(noisy)
    assert sorted(fit.half_extents) == pytest.approx([1.2, 1.5, 3.0], abs=0.03)
    assert fit.rmse < 0.03


def test_faces_are_outward_with_four_bounds_each() -> None:
    fit = fit_cuboid(_rotated_box((1.0, 1.0, 1.0), np.array([1.0, 2.0, 3.0]), axis_angle_matrix((0.0, 0.0, 1.0), 0.4)))
    faces = cuboid_faces(fit)
    assert len(faces) == 6
    for eq, bounds in faces:
        assert bounds.shape == (4, 3)
        assert signed_distance(eq, fit.center) < 0.0
        for p in bounds:
            assert signed_distance(eq, p) == pytest.approx(0.0, abs=1e-6)
        # Outline order: consecutive corners share an edge, so no diagonal steps.
        steps = [np.linalg.norm(bounds[k] - bounds[(k + 1) % 4]) for k in range(4)]
        diagonal = np.linalg.norm(bounds[0] - bounds[2])
        assert max(steps) < diagonal


def test_fit_needs_eight_distinct_corners() -> None:
    with pytest.raises(ScanroomInputError, match="needs 8 corners"):
        fit_cuboid(np.zeros((7, 3)))
    with pytest.raises(GeometryDegeneracyError):
        fit_cuboid(np.zeros((8, 3)))


def test_fit_cuboid_to_room_keeps_corner_ids_and_drops_connections(store, make_box_room) -> None:
    room = make_box_room(store, center=(0.0, 0.0, 0.0), half=(2.0, 1.0, 1.5), with_corners=True)
    other = make_box_room(store, center=(6.0, 0.0, 0.0), with_corners=True)
    connect_walls(store, room.planes[0].id, other.planes[1].id, Same())

    fit = fit_cuboid_to_room(store, room.id)

    updated = store.rooms[room.id]
    assert [i for i, _ in updated.corners] == [i for i, _ in room.corners]
    assert updated.corner_points() == pytest.approx(room.corner_points(), abs=1e-6)
    assert len(updated.planes) == 6
    assert {p.id for p in updated.planes}.isdisjoint(p.id for p in room.planes)
    assert len(store.walls) == 0
    assert sorted(fit.half_extents) == pytest.approx([1.0, 1.5, 2.0])


def test_fit_cuboid_to_room_needs_eight_corners(store, make_box_room) -> None:
    room = make_box_room(store)
    with pytest.raises(ScanroomInputError, match="need 8 to fit"):
        fit_cuboid_to_room(store, room.id)
