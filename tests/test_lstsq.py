from __future__ import annotations


import pytest

from scanroom.core.errors import SingularSystemError
from scanroom.registration import group_connected_components, lst_sq_distances


def test_chain_of_offsets_is_solved_exactly() -> None:
    sol = lst_sq_distances([("a", "b", 2.0), ("b", "c", 3.0)])
    assert sol.positions == pytest.approx({"a": 0.0, "b": 2.0, "c": 5.0})
    assert sol.rmse == pytest.approx(0.0, abs=1e-12)


def test_inconsistent_cycle_is_averaged() -> None:
    sol = lst_sq_distances([("a", "b", 1.0), ("b", "c", 1.0), ("a", "c", 3.0)])
    assert sol.positions["b"] == pytest.approx(4.0 / 3.0)
    assert sol.positions["c"] == pytest.approx(8.0 / 3.0)
    assert sol.rmse == pytest.approx(1.0 / 3.0)


def test_duplicate_constraints_both_count() -> None:
    sol = lst_sq_distances([("a", "b", 1.0), ("a", "b", 2.0), ("a", "b", 3.0)])
    assert sol.positions["b"] == pytest.approx(2.0)


def test_explicit_anchor_is_pinned_at_zero() -> None:
    sol = lst_sq_distances([("a", "b", 2.0)], anchor="b")
    assert sol.positions == pytest.approx({"a": -2.0, "b": 0.0})


def test_disconnected_nodes_make_the_system_singular() -> None:
    with pytest.raises(SingularSystemError, match="rank"):
        lst_sq_distances([("a", "b", 1.0), ("c", "d", 1.0)])


def test_bad_constraints_are_rejected() -> None:
    with pytest.raises(SingularSystemError, match="non-finite"):
        lst_sq_distances([("a", "b", float("nan"))])
    with pytest.raises(SingularSystemError, match="itself"):
        lst_sq_distances([("a", "a", 1.0)])
    with pytest.raises(SingularSystemError):
        lst_sq_distances([])
    with pytest.raises(SingularSystemError, match="anchor"):
        lst_sq_distances([("a", "b", 1.0)], anchor="z")


def test_components_are_grouped_in_input_order() -> None:
    constraints = [(1, 2, 1.0), (3, 4, 1.0), (2, 5, 1.0), (4, 6, 2.0)]
    groups = group_connected_components(constraints)
    assert groups == [[(1, 2, 1.0), (2, 5, 1.0)], [(3, 4, 1.0), (4, 6, 2.0)]]


def test_each_component_solves_independently() -> None:
    groups = group_connected_components([("a", "b", 1.0), ("c", "d", 5.0)])
    solutions = [lst_sq_distances(g) for g in groups]
    assert solutions[0].positions == pytest.approx({"a": 0.0, "b": 1.0})
    assert solutions[1].positions == pytest.approx({"c": 0.0, "d": 5.0})
