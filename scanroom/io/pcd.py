"""
Point cloud loading for PCL ``.pcd`` files, via open3d.

Only positions and, when the file carries them, per-point colours are used.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Tuple

import numpy as np
import open3d as o3d

from scanroom.core.errors import ScanroomInputError
from scanroom.core.ids import IdAllocator
from scanroom.scene.entities import RED, Cloud, ManyColors, OneColor

log = logging.getLogger(__name__)


class PointCloudReader(Protocol):
    def load_xyz(self, path: Path) -> np.ndarray: ...

    def load_xyz_rgb(self, path: Path) -> Tuple[np.ndarray, np.ndarray]: ...


def read_point_cloud(path) -> o3d.geometry.PointCloud:
    p = Path(path)
    if not p.is_file():
        raise ScanroomInputError(f"cannot read point cloud {p}: no such file")
    # open3d logs and returns an empty cloud on unreadable files instead of raising.
    return o3d.io.read_point_cloud(str(p))


class PcdReader:
    """Reads point positions and colours from PCD files."""

    def load_xyz(self, path) -> np.ndarray:
        pcd = read_point_cloud(path)
        return np.asarray(pcd.points, dtype=float).reshape(-1, 3)

    def load_xyz_rgb(self, path) -> Tuple[np.ndarray, np.ndarray]:
        pcd = read_point_cloud(path)
        if not pcd.has_colors():
            raise ScanroomInputError(f"{path}: point cloud has no colours")
        points = np.asarray(pcd.points, dtype=float).reshape(-1, 3)
        return points, np.asarray(pcd.colors, dtype=float).reshape(-1, 3)


def cloud_from_file(ids: IdAllocator, path, reader: Optional[PointCloudReader] = None) -> Cloud:
    """
    Load a cloud, coloured per point if the file carries colours and plain red
    otherwise. A file without points is an input error.
    """
    rd = reader or PcdReader()
    p = Path(path)
    points = rd.load_xyz(p)
    if len(points) == 0:
        raise ScanroomInputError(f"File {p} contains no points!")
    color = OneColor(RED)
    try:
        _, rgb = rd.load_xyz_rgb(p)
    except ScanroomInputError:
        log.debug("%s has no colours; using a single colour", p)
    else:
        color = ManyColors(rgb=rgb)
    return Cloud(id=ids.next_id(), color=color, points=points)
