from __future__ import annotations

import numpy as np
import pytest

from captree import solve
from captree.algorithms import (
    CapacitatedTreeConfig,
    InfeasibleCapacityError,
    capacitated_tree_k_center,
    center_loads,
    check_radius,
    compute_radius,
)
from captree.trees import Tree, compute_tree_distances, random_tree

SKIP = CapacitatedTreeConfig(skip_assigned_candidates=True)


def _star(scale=1) -> Tree:
    T = Tree(4)
    T.add_edge(1, 2, 1 * scale)
    T.add_edge(1, 3, 3 * scale)
    T.add_edge(1, 4, 1 * scale)
    return T


def _path(n: int) -> Tree:
    T = Tree(n)
    for v in range(2, n + 1):
        T.add_edge(v - 1, v, 1)
    return T


def _assert_valid_solution(T: Tree, capacity: int, k: int, result) -> None:
    radius, centers, assignment = result
    dist = compute_tree_distances(T)
    assert sorted(assignment) == list(range(1, T.n + 1))
    assert len(centers) <= k
    assert len(set(centers)) == len(centers)
    assert set(assignment.values()) <= set(centers)
    assert max(center_loads(assignment).values()) <= capacity
    assert compute_radius(dist, assignment) <= radius


def test_star_scenario() -> None:
    radius, centers, assignment = solve(_star(), 3, 2)

    assert radius == 1
    assert centers == [3, 1]
    assert assignment == {1: 1, 2: 1, 3: 3, 4: 1}
    assert max(center_loads(assignment).values()) <= 3


def test_star_check_is_monotone_and_zero_is_infeasible() -> None:
    dist = compute_tree_distances(_star())
    assert not check_radius(dist, 2, 3, 0).feasible
    for r in (1, 2, 3, 4):
        assert check_radius(dist, 2, 3, r).feasible


def test_tight_capacity_truncates_to_farthest_vertices() -> None:
    # k * C == n: the first center keeps the two vertices farthest from the root.
    dist = compute_tree_distances(_star())
    assert not check_radius(dist, 2, 2, 2).feasible

    radius, centers, assignment = capacitated_tree_k_center(_star(), capacity=2, k=2)
    assert radius == 3
    assert centers == [1, 2]
    assert assignment == {1: 2, 2: 1, 3: 1, 4: 2}


def test_tight_capacity_with_skipped_candidates() -> None:
    radius, centers, assignment = capacitated_tree_k_center(_star(), capacity=2, k=2, config=SKIP)
    assert radius == 3
    # Center 1 keeps a slot for itself, so only vertex 3 joins it.
    assert centers == [1, 2]
    assert assignment == {1: 1, 2: 2, 3: 1, 4: 2}


def test_path_keeps_stale_candidates_by_default() -> None:
    radius, centers, assignment = solve(_path(6), 3, 2)
    assert radius == 4
    assert centers == [6, 1]
    assert assignment == {1: 1, 2: 1, 3: 1, 4: 6, 5: 6, 6: 6}

    dist = compute_tree_distances(_path(6))
    stale = check_radius(dist, 2, 3, 3)
    assert not stale.feasible
    # The second pop re-opens the already served vertex 5.
    assert stale.centers == [6, 5]
    assert 1 not in stale.assignment
    assert check_radius(dist, 2, 3, 5).feasible


def test_path_skipping_assigned_candidates_finds_smaller_radius() -> None:
    radius, centers, assignment = solve(_path(6), 3, 2, SKIP)
    assert radius == 2
    assert centers == [6, 1]
    assert assignment == {1: 1, 2: 1, 3: 1, 4: 6, 5: 6, 6: 6}


def test_float_weights_return_float_radius() -> None:
    radius, centers, _ = solve(_star(scale=0.5), 3, 2)
    assert isinstance(radius, float)
    assert np.isclose(radius, 0.5)
    assert centers == [3, 1]


def test_check_results_are_call_local() -> None:
    dist = compute_tree_distances(_star())
    feasible = check_radius(dist, 2, 3, 1)
    infeasible = check_radius(dist, 2, 3, 0)

    assert feasible.feasible and not infeasible.feasible
    assert feasible.centers == [3, 1]
    assert feasible.assignment == {1: 1, 2: 1, 3: 3, 4: 1}
    assert infeasible.centers == [3, 2]
    assert infeasible.assignment == {2: 2, 3: 3}


def test_precomputed_distances_accepted() -> None:
    T = random_tree(20, seed=5)
    assert solve(compute_tree_distances(T), 5, 4) == solve(T, 5, 4)


def test_insufficient_capacity_rejected_before_search() -> None:
    with pytest.raises(InfeasibleCapacityError, match="insufficient total capacity"):
        solve(_star(), 3, 1)

    # Rejected before the (invalid) tree is ever traversed.
    incomplete = Tree(10)
    incomplete.add_edge(1, 2, 1)
    with pytest.raises(InfeasibleCapacityError):
        solve(incomplete, 2, 2)


@pytest.mark.parametrize("capacity, k", [(0, 2), (3, 0), (3, -1), (2.5, 2), (3, True)])
def test_bad_parameters_rejected(capacity, k) -> None:
    with pytest.raises(ValueError):
        solve(_star(), capacity, k)


def test_single_vertex_tree() -> None:
    assert solve(Tree(1), 1, 1) == (0, [1], {1: 1})


@pytest.mark.parametrize("shape", ["recursive", "caterpillar", "binary"])
@pytest.mark.parametrize("n, k, capacity", [(24, 4, 6), (24, 3, 10), (17, 5, 4)])
def test_random_trees_respect_invariants(shape: str, n: int, k: int, capacity: int) -> None:
    T = random_tree(n, shape=shape, seed=n + k)
    for config in (None, SKIP):
        result = capacitated_tree_k_center(T, capacity, k, config)
        _assert_valid_solution(T, capacity, k, result)
        assert capacitated_tree_k_center(T, capacity, k, config) == result


@pytest.mark.parametrize("seed", range(6))
def test_next_smaller_distance_is_infeasible(seed: int) -> None:
    T = random_tree(18, seed=seed)
    dist = compute_tree_distances(T)
    radius, _, _ = solve(dist, 5, 4)

    idx = int(np.searchsorted(dist.universe, radius, side="left"))
    assert dist.universe[idx] == radius
    if idx > 0:
        smaller = dist.universe[idx - 1]
        assert smaller < radius
        assert not check_radius(dist, 4, 5, smaller).feasible
    assert check_radius(dist, 4, 5, radius).feasible


def test_skipping_assigned_candidates_keeps_the_center_served() -> None:
    # Capacity truncation must not drop an opened center from its own
    # cluster, or its consumed queue entry would strand it unassigned.
    T = random_tree(17, seed=22)
    dist = compute_tree_distances(T)
    assert check_radius(dist, 5, 4, dist.universe[-1], SKIP).feasible

    result = capacitated_tree_k_center(T, 4, 5, SKIP)
    _assert_valid_solution(T, 4, 5, result)
    _, centers, assignment = result
    assert all(assignment[c] == c for c in centers)


@pytest.mark.parametrize("config", [None, SKIP])
@pytest.mark.parametrize("seed", range(20))
def test_search_succeeds_on_random_trees(config, seed: int) -> None:
    T = random_tree(14, seed=seed)
    _assert_valid_solution(T, 4, 4, capacitated_tree_k_center(T, 4, 4, config))


def test_stale_candidates_make_the_check_non_monotone() -> None:
    dist = compute_tree_distances(random_tree(14, seed=5))
    radius, _, _ = solve(dist, 4, 4)

    assert radius == 32
    assert 36 in dist.universe
    assert check_radius(dist, 4, 4, radius).feasible
    assert not check_radius(dist, 4, 4, 36).feasible


def test_negative_radius_is_infeasible() -> None:
    result = check_radius(compute_tree_distances(_star()), 2, 3, -1)
    assert not result.feasible
    assert result.centers == [] and result.assignment == {}


@pytest.mark.parametrize("seed", range(10))
def test_float_weights_keep_assignments_within_radius(seed: int) -> None:
    T = random_tree(12, weight_range=(0.1, 1.0), integer_weights=False, seed=seed)
    dist = compute_tree_distances(T)
    for config in (None, SKIP):
        radius, _, assignment = solve(dist, 3, 4, config)
        assert compute_radius(dist, assignment) <= radius
