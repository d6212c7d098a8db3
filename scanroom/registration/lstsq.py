"""
Least-squares placement of rooms along one axis from pairwise offsets.

Each constraint ``(a, b, d)`` asks for ``x[b] - x[a] = d``. The system only
determines positions up to one shared constant per connected component, so
the solver pins one anchor room at 0 and callers are expected to feed it one
connected component at a time (see `group_connected_components`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from scanroom.core.errors import SingularSystemError
from scanroom.geometry.tolerance import EPS_RANK

OffsetConstraint = Tuple[Hashable, Hashable, float]


@dataclass(frozen=True)
class OffsetSolution:
    positions: Dict[Hashable, float]
    rmse: float


def lst_sq_distances(
    constraints: Sequence[OffsetConstraint],
    anchor: Optional[Hashable] = None,
) -> OffsetSolution:
    """
    Solve for 1-D positions best satisfying all desired offsets.

    `anchor` (default: first node of the first constraint) is fixed at 0.
    Raises SingularSystemError when the positions are not determined.
    """
    if not constraints:
        raise SingularSystemError("no constraints to solve")
    nodes: List[Hashable] = []
    for a, b, _ in constraints:
        for n in (a, b):
            if n not in nodes:
                nodes.append(n)
    if anchor is None:
        anchor = nodes[0]
    if anchor not in nodes:
        raise SingularSystemError(f"anchor {anchor!r} is not part of the constraints")

    free = [n for n in nodes if n != anchor]
    column = {n: k for k, n in enumerate(free)}
    A = np.zeros((len(constraints), len(free)), dtype=float)
    rhs = np.zeros(len(constraints), dtype=float)
    for row, (a, b, d) in enumerate(constraints):
        if not math.isfinite(float(d)):
            raise SingularSystemError(f"non-finite desired offset between {a!r} and {b!r}")
        if a == b:
            raise SingularSystemError(f"constraint relates {a!r} to itself")
        if b in column:
            A[row, column[b]] += 1.0
        if a in column:
            A[row, column[a]] -= 1.0
        rhs[row] = float(d)

    if free:
        x, _, rank, _ = np.linalg.lstsq(A, rhs, rcond=EPS_RANK)
        if rank < len(free):
            raise SingularSystemError(f"offset system has rank {rank}, need {len(free)}")
    else:
        x = np.zeros(0)

    positions: Dict[Hashable, float] = {anchor: 0.0}
    for n, k in column.items():
        positions[n] = float(x[k])
    residual = A @ x - rhs if free else -rhs
    rmse = float(np.sqrt(np.mean(residual**2)))
    return OffsetSolution(positions=positions, rmse=rmse)


def group_connected_components(constraints: Sequence[OffsetConstraint]) -> List[List[OffsetConstraint]]:
    """
    Split constraints into groups whose nodes are connected.

    Groups keep the relative order of the input constraints and are ordered by
    their first constraint.
    """
    graph = nx.Graph()
    for a, b, _ in constraints:
        graph.add_edge(a, b)
    component_of: Dict[Hashable, int] = {}
    for k, nodes in enumerate(nx.connected_components(graph)):
        for n in nodes:
            component_of[n] = k

    groups: Dict[int, List[OffsetConstraint]] = {}
    for c in constraints:
        groups.setdefault(component_of[c[0]], []).append(c)
    return list(groups.values())
