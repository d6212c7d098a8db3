from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

import numpy as np

from scanroom.core.errors import GeometryDegeneracyError, ScanroomInputError
from scanroom.core.ids import IdAllocator
from scanroom.geometry.plane import PlaneEq, make_plane_eq_abcd
from scanroom.io.pcd import PcdReader, PointCloudReader
from scanroom.scene.entities import Plane, random_color

log = logging.getLogger(__name__)

PLANES_FILE = "planes.txt"
HULL_FILE_PATTERN = "cloud_plane_hull{index}.pcd"

# Fields are separated by whitespace and/or "+"; the "+" of an exponent is kept.
_FIELD_SEP = re.compile(r"(?<![eE])\+|\s+")


def parse_plane_eqs(text: str, source: str = "<string>") -> List[PlaneEq]:
    """
    Parse one ``a b c d`` plane per line (``1+0+0+-2`` is also accepted).

    Segmentation tools write ``ax + by + cz + d = 0``; planes here are
    ``n . p = d``, so ``d`` is negated on the way in.
    """
    eqs: List[PlaneEq] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        s = line.strip()
        if not s:
            continue
        parts = [t for t in _FIELD_SEP.split(s) if t]
        if len(parts) != 4:
            raise ScanroomInputError(f"Could not load planes: {source}:{lineno}: expected 4 numbers, got {len(parts)}")
        try:
            a, b, c, d = (float(x) for x in parts)
        except ValueError as exc:
            raise ScanroomInputError(f"Could not load planes: {source}:{lineno}: {exc}") from exc
        try:
            eqs.append(make_plane_eq_abcd(a, b, c, -d))
        except GeometryDegeneracyError as exc:
            raise ScanroomInputError(f"Could not load planes: {source}:{lineno}: {exc}") from exc
    if not eqs:
        raise ScanroomInputError(f"Could not load planes: {source} contains no planes")
    return eqs


def plane_eqs_from_file(path) -> List[PlaneEq]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScanroomInputError(f"Could not load planes: {exc}") from exc
    return parse_plane_eqs(text, source=str(p))


def planes_from_dir(
    ids: IdAllocator,
    directory,
    reader: Optional[PointCloudReader] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Plane]:
    """
    Planes of a segmented scan directory: equations from ``planes.txt`` and
    the boundary of plane ``i`` from ``cloud_plane_hull{i}.pcd``.
    """
    rd = reader or PcdReader()
    d = Path(directory)
    eqs = plane_eqs_from_file(d / PLANES_FILE)
    planes: List[Plane] = []
    for index, eq in enumerate(eqs):
        hull = d / HULL_FILE_PATTERN.format(index=index)
        log.info("Loading %s", hull)
        bounds = rd.load_xyz(hull)
        planes.append(Plane(id=ids.next_id(), eq=eq, color=random_color(rng), bounds=bounds))
    return planes
