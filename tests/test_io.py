from __future__ import annotations

from pathlib import Path

import numpy as np
import open3d as o3d
import pytest

from scanroom.core.errors import ScanroomInputError
from scanroom.core.ids import IdAllocator
from scanroom.io import PcdReader, cloud_from_file, parse_plane_eqs, planes_from_dir
from scanroom.ops import load_room
from scanroom.scene.entities import ManyColors, OneColor


def test_parse_plane_eqs_negates_offset_and_skips_blank_lines() -> None:
    eqs = parse_plane_eqs("0 0 2 -4\n\n  1 0 0 3  \n")
    assert len(eqs) == 2
    assert eqs[0].normal == pytest.approx((0.0, 0.0, 1.0))
    assert eqs[0].offset == pytest.approx(2.0)
    assert eqs[1].offset == pytest.approx(-3.0)


def test_parse_plane_eqs_accepts_plus_separated_fields() -> None:
    eqs = parse_plane_eqs("1+0+0+-2\n0 0 1+3\n0 + 2.5e+0 + 0 + -5\n")
    assert [e.normal for e in eqs] == [
        pytest.approx((1.0, 0.0, 0.0)),
        pytest.approx((0.0, 0.0, 1.0)),
        pytest.approx((0.0, 1.0, 0.0)),
    ]
    assert [e.offset for e in eqs] == pytest.approx([2.0, -3.0, 2.0])


@pytest.mark.parametrize(
    "text, message",
    [
        ("1 0 0\n", "expected 4 numbers"),
        ("1 0 0 x\n", "Could not load planes"),
        ("0 0 0 1\n", "Could not load planes"),
        ("\n\n", "contains no planes"),
    ],
)
def test_parse_plane_eqs_rejects_bad_input(text: str, message: str) -> None:
    with pytest.raises(ScanroomInputError, match=message):
        parse_plane_eqs(text)


def test_ascii_pcd_without_colors_is_red(tmp_path: Path, write_pcd) -> None:
    path = write_pcd(tmp_path / "c.pcd", [(0.0, 1.0, 2.0), (3.0, 4.0, 5.0)])
    cloud = cloud_from_file(IdAllocator(), path)
    assert cloud.points == pytest.approx([[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]])
    assert isinstance(cloud.color, OneColor)
    assert cloud.color.rgb == (1.0, 0.0, 0.0)


def test_ascii_pcd_with_integer_rgb(tmp_path: Path, write_pcd) -> None:
    path = write_pcd(
        tmp_path / "c.pcd",
        [(0.0, 0.0, 0.0, 0xFF0000), (1.0, 0.0, 0.0, 0x0000FF)],
        fields="x y z rgb",
        types="F F F U",
    )
    points, rgb = PcdReader().load_xyz_rgb(path)
    assert len(points) == 2
    assert rgb == pytest.approx([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])


def test_binary_pcd_with_packed_float_rgb(tmp_path: Path) -> None:
    dtype = np.dtype([("x", "<f4"), ("y", "<f4"), ("z", "<f4"), ("rgb", "<f4")])
    records = np.zeros(2, dtype=dtype)
    records["x"] = [0.5, -0.5]
    records["z"] = [2.0, 3.0]
    records["rgb"] = np.array([0x00FF00, 0x0000FF], dtype="<u4").view("<f4")
    header = (
        "VERSION 0.7\nFIELDS x y z rgb\nSIZE 4 4 4 4\nTYPE F F F F\nCOUNT 1 1 1 1\n"
        "WIDTH 2\nHEIGHT 1\nVIEWPOINT 0 0 0 1 0 0 0\nPOINTS 2\nDATA binary\n"
    )
    path = tmp_path / "b.pcd"
    path.write_bytes(header.encode("ascii") + records.tobytes())

    cloud = cloud_from_file(IdAllocator(), path)

    assert cloud.points == pytest.approx([[0.5, 0.0, 2.0], [-0.5, 0.0, 3.0]])
    assert isinstance(cloud.color, ManyColors)
    assert cloud.color.rgb == pytest.approx([[0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])


def test_binary_compressed_pcd_is_read(tmp_path: Path) -> None:
    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(np.array([[0.0, 1.0, 2.0], [3.0, 4.0, 5.0], [6.0, 7.0, 8.0]]))
    path = tmp_path / "z.pcd"
    assert o3d.io.write_point_cloud(str(path), pcd, write_ascii=False, compressed=True)
    assert b"binary_compressed" in path.read_bytes()

    cloud = cloud_from_file(IdAllocator(), path)

    assert cloud.points == pytest.approx([[0.0, 1.0, 2.0], [3.0, 4.0, 5.0], [6.0, 7.0, 8.0]])
    assert isinstance(cloud.color, OneColor)


def test_empty_cloud_is_an_input_error(tmp_path: Path, write_pcd) -> None:
    empty = write_pcd(tmp_path / "e.pcd", [])
    with pytest.raises(ScanroomInputError, match="contains no points"):
        cloud_from_file(IdAllocator(), empty)


def test_missing_pcd_file_is_an_input_error(tmp_path: Path) -> None:
    with pytest.raises(ScanroomInputError, match="cannot read point cloud"):
        PcdReader().load_xyz(tmp_path / "nope.pcd")


def test_planes_from_dir_pairs_equations_with_hulls(scan_dir: Path) -> None:
    d = scan_dir
    planes = planes_from_dir(IdAllocator(), d, rng=np.random.default_rng(0))
    assert [len(p.bounds) for p in planes] == [4, 3]
    assert len({p.id for p in planes}) == 2


def test_missing_hull_file_is_an_input_error(scan_dir: Path) -> None:
    d = scan_dir
    (d / "cloud_plane_hull1.pcd").unlink()
    with pytest.raises(ScanroomInputError, match="cannot read point cloud"):
        planes_from_dir(IdAllocator(), d)


def test_load_room_turns_walls_inward(scan_dir: Path, store) -> None:
    d = scan_dir
    room = load_room(store, d, rng=np.random.default_rng(1))
    assert store.rooms[room.id] is room
    assert room.name == str(d / "cloud_downsampled.pcd")
    assert room.proj == pytest.approx(np.eye(4))
    x_wall, floor = room.planes
    assert x_wall.normal == pytest.approx([-1.0, 0.0, 0.0])
    assert x_wall.eq.offset == pytest.approx(-1.0)
    assert floor.normal == pytest.approx([0.0, 1.0, 0.0])
    assert floor.eq.offset == pytest.approx(-1.0)
    assert store.history[-1]["action"] == "ops.load_room"


def test_load_room_kinfu_turns_it_upright(scan_dir: Path, store) -> None:
    d = scan_dir
    room = load_room(store, d, kinfu=True)
    expected = np.diag([1.0, -1.0, -1.0, 1.0])
    assert room.proj == pytest.approx(expected, abs=1e-12)
    assert room.planes[1].normal == pytest.approx([0.0, -1.0, 0.0], abs=1e-12)


def test_load_room_failure_leaves_store_unchanged(tmp_path: Path, scan_dir: Path, store) -> None:
    d = scan_dir
    (d / "planes.txt").write_text("nonsense\n", encoding="utf-8")
    with pytest.raises(ScanroomInputError, match="Could not load planes"):
        load_room(store, d)
    assert not store.rooms
    with pytest.raises(ScanroomInputError, match="does not exist"):
        load_room(store, tmp_path / "missing")
