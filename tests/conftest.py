from __future__ import annotations

from itertools import product
from pathlib import Path

import numpy as np
import pytest

from scanroom.geometry.plane import PlaneEq
from scanroom.scene.entities import Cloud, OneColor, Plane, Room
from scanroom.scene.store import SceneStore


def _box_room(store: SceneStore, center=(0.0, 0.0, 0.0), half=(1.0, 1.0, 1.0), with_corners: bool = False, name: str = "") -> Room:
    """
    Axis-aligned box room with six inward-facing walls, added to `store`.

    Planes are ordered +X, -X, +Y, -Y, +Z, -Z (by face position). The cloud
    holds the 8 corners and 6 face centers, so its mean is `center`.
    """
    c = np.asarray(center, dtype=float)
    h = np.asarray(half, dtype=float)
    corners = [c + np.array(s) * h for s in product((-1.0, 1.0), repeat=3)]
    planes = []
    face_centers = []
    for k in range(3):
        for s in (1.0, -1.0):
            n = np.zeros(3)
            n[k] = -s
            face = c.copy()
            face[k] += s * h[k]
            face_centers.append(face)
            bounds = [p for p in corners if abs(p[k] - face[k]) < 1e-12]
            eq = PlaneEq(normal=tuple(n), offset=float(np.dot(n, face)))
            planes.append(Plane(id=store.gen_id(), eq=eq, color=(0.5, 0.5, 0.5), bounds=np.array(bounds)))
    cloud = Cloud(id=store.gen_id(), color=OneColor(), points=np.array(corners + face_centers))
    room = Room(
        id=store.gen_id(),
        planes=tuple(planes),
        cloud=cloud,
        corners=tuple((store.gen_id(), tuple(p)) for p in corners) if with_corners else (),
        name=name,
    )
    store.update_room(room)
    return room


@pytest.fixture
def store() -> SceneStore:
    return SceneStore()


@pytest.fixture
def make_box_room():
    return _box_room


def _write_ascii_pcd(path: Path, points, fields: str = "x y z", types: str = "F F F") -> Path:
    n_fields = len(fields.split())
    lines = [
        "# .PCD v0.7 - Point Cloud Data file format",
        "VERSION 0.7",
        f"FIELDS {fields}",
        "SIZE " + " ".join(["4"] * n_fields),
        f"TYPE {types}",
        "COUNT " + " ".join(["1"] * n_fields),
        f"WIDTH {len(points)}",
        "HEIGHT 1",
        "VIEWPOINT 0 0 0 1 0 0 0",
        f"POINTS {len(points)}",
        "DATA ascii",
    ]
    lines += [" ".join(str(v) for v in p) for p in points]
    path.write_text("\n".join(lines) + "\n", encoding="ascii")
    return path


@pytest.fixture
def write_pcd():
    return _write_ascii_pcd


@pytest.fixture
def scan_dir(tmp_path: Path) -> Path:
    """A segmented scan of a 2x2x2 cube with two walls: x = 1 and the floor y = -1."""
    d = tmp_path / "scans" / "room_a" / "seg"
    d.mkdir(parents=True)
    cube = [(x, y, z) for x in (-1.0, 1.0) for y in (-1.0, 1.0) for z in (-1.0, 1.0)]
    _write_ascii_pcd(d / "cloud_downsampled.pcd", cube)
    # Written as ax + by + cz + d = 0.
    (d / "planes.txt").write_text("1 0 0 -1\n0 1 0 1\n", encoding="utf-8")
    _write_ascii_pcd(d / "cloud_plane_hull0.pcd", [(1.0, -1.0, -1.0), (1.0, 1.0, -1.0), (1.0, 1.0, 1.0), (1.0, -1.0, 1.0)])
    _write_ascii_pcd(d / "cloud_plane_hull1.pcd", [(-1.0, -1.0, -1.0), (1.0, -1.0, -1.0), (1.0, -1.0, 1.0)])
    return d
