from __future__ import annotations

from pathlib import Path

import pytest

from scanroom.cli import main
from scanroom.project import load_from, save_to
from scanroom.scene.store import SceneStore
from scanroom.scene.walls import Opposite


@pytest.fixture
def saved(tmp_path: Path, store, make_box_room) -> Path:
    r1 = make_box_room(store, with_corners=True, name="/scans/room_a/seg/cloud_downsampled.pcd")
    r2 = make_box_room(store, center=(5.0, 0.3, 0.0), with_corners=True, name="/scans/room_b/seg2/cloud_downsampled.pcd")
    store.walls.connect(r1.planes[0].id, r1.planes[0].eq, r2.planes[1].id, r2.planes[1].eq, Opposite(0.1))
    return save_to(store, tmp_path / "rooms.scanroom")


def test_info_lists_rooms(saved: Path, capsys) -> None:
    assert main(["info", str(saved)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("2 rooms, 1 wall connections")
    assert "corners: 8 accepted, 0 suggested" in out
    assert "along X: Opposite(gap=0.1)" in out


def test_optimize_writes_aligned_rooms(saved: Path, tmp_path: Path, capsys) -> None:
    out_path = tmp_path / "aligned.scanroom"
    assert main(["optimize", str(saved), "-o", str(out_path)]) == 0
    assert "X: rooms" in capsys.readouterr().out
    store = SceneStore()
    first, second = load_from(store, out_path)
    assert store.rooms[second].corner_mean() == pytest.approx([2.1, 0.3, 0.0])


def test_export_xf_and_pcl_commands(saved: Path, tmp_path: Path, capsys) -> None:
    assert main(["export-xf", str(saved), str(tmp_path / "xf")]) == 0
    assert sorted(p.name for p in (tmp_path / "xf").iterdir()) == ["seg.xf", "seg2.xf"]
    capsys.readouterr()
    assert main(["pcl-commands", str(saved), "--tool", "xform"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("xform /scans/room_a/seg/cloud_downsampled.pcd room_a-placed.pcd -matrix 1.0,")


def test_projection_of_listed_room(saved: Path, capsys) -> None:
    store = SceneStore()
    first, _ = load_from(store, saved)
    assert main(["projection", str(saved), str(first)]) == 0
    assert capsys.readouterr().out.strip().split(",")[::5] == ["1.0", "1.0", "1.0", "1.0"]


def test_import_room_creates_the_save(tmp_path: Path, scan_dir: Path, capsys) -> None:
    target = tmp_path / "new.scanroom"
    assert main(["import-room", str(scan_dir), "--save", str(target), "--kinfu"]) == 0
    assert "loaded with 2 planes" in capsys.readouterr().out
    store = SceneStore()
    [rid] = load_from(store, target)
    assert store.rooms[rid].proj[1, 1] == pytest.approx(-1.0)


def test_errors_are_reported_not_raised(tmp_path: Path, capsys) -> None:
    assert main(["info", str(tmp_path / "missing.scanroom")]) == 2
    assert capsys.readouterr().out.startswith("[ERROR] Failed loading")


def test_unknown_room_is_an_error(saved: Path, capsys) -> None:
    assert main(["projection", str(saved), "9999"]) == 2
    assert "Room with ID 9999 does not exist" in capsys.readouterr().out


def test_import_room_defaults_to_configured_save_path(tmp_path: Path, scan_dir: Path, monkeypatch, capsys) -> None:
    target = tmp_path / "configured.scanroom"
    monkeypatch.setenv("SCANROOM_SAVE_PATH", str(target))
    assert main(["import-room", str(scan_dir)]) == 0
    assert target.exists()


def test_connect_uses_configured_wall_thickness(tmp_path: Path, store, make_box_room, monkeypatch, capsys) -> None:
    r1 = make_box_room(store, with_corners=True)
    r2 = make_box_room(store, center=(5.0, 0.0, 0.0), with_corners=True)
    path = save_to(store, tmp_path / "rooms.scanroom")
    # Loading into a fresh session shifts saved IDs by its first ID.
    p1, p2 = r1.planes[0].id + 1, r2.planes[1].id + 1
    monkeypatch.setenv("SCANROOM_WALL_THICKNESS", "0.3")

    assert main(["connect", str(path), str(p1), str(p2), "--opposite"]) == 0
    # The first command saved the IDs it loaded, so they shift once more.
    assert main(["connect", str(path), str(p2 + 1), str(p1 + 1)]) == 0
    assert "already connected" in capsys.readouterr().out

    check = SceneStore()
    load_from(check, path)
    [edge] = check.walls.edges
    assert edge.relation == Opposite(0.3)


def test_suggest_corners_and_fit_cuboid(tmp_path: Path, store, make_box_room, capsys) -> None:
    room = make_box_room(store, half=(2.0, 1.0, 1.0))
    path = save_to(store, tmp_path / "rooms.scanroom")
    rid = room.id + 1

    assert main(["suggest-corners", str(path), str(rid)]) == 0
    assert "8 of 20 plane triples accepted as corners" in capsys.readouterr().out
    assert main(["fit-cuboid", str(path), str(rid), "-o", str(tmp_path / "fitted.scanroom")]) == 0
    assert "cuboid" in capsys.readouterr().out

    fitted = SceneStore()
    [new_rid] = load_from(fitted, tmp_path / "fitted.scanroom")
    assert len(fitted.rooms[new_rid].planes) == 6
    assert len(fitted.rooms[new_rid].corners) == 8


def test_move_wall_steps(tmp_path: Path, store, make_box_room, capsys) -> None:
    room = make_box_room(store)
    path = save_to(store, tmp_path / "rooms.scanroom")
    plane_id = room.planes[0].id + 1
    assert main(["move-wall", str(path), str(plane_id), "1", "0", "0", "--steps", "10"]) == 0
    assert "offset -1.1000" in capsys.readouterr().out


def test_fit_cuboid_without_corners_fails(tmp_path: Path, store, make_box_room, capsys) -> None:
    room = make_box_room(store)
    path = save_to(store, tmp_path / "rooms.scanroom")
    assert main(["fit-cuboid", str(path), str(room.id + 1)]) == 2
    assert "need 8 to fit" in capsys.readouterr().out
