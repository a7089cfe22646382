from __future__ import annotations

from collections import Counter
from numbers import Integral
from typing import Dict, Mapping, Union

from captree.trees.distances import TreeDistances, compute_tree_distances
from captree.trees.tree import Tree

TreeLike = Union[Tree, TreeDistances]


class InfeasibleCapacityError(ValueError):
    """Raised when ``k * capacity < n``: no radius can cover every vertex."""


def normalize_tree_input(T: TreeLike) -> TreeDistances:
    """Return the precomputed distances for a Tree, or pass TreeDistances through."""
    if isinstance(T, TreeDistances):
        return T
    if isinstance(T, Tree):
        return compute_tree_distances(T)
    raise TypeError(f"Expected a Tree or TreeDistances, got {type(T).__name__}.")


def validate_k_capacity(k: int, capacity: int, n: int) -> None:
    for name, value in (("k", k), ("capacity", capacity)):
        if isinstance(value, bool) or not isinstance(value, Integral) or value <= 0:
            raise ValueError(f"{name} must be a positive integer, got {value!r}.")
    if k * capacity < n:
        raise InfeasibleCapacityError(
            f"Infeasible: insufficient total capacity (k * capacity = {k * capacity} < n = {n})."
        )


def center_loads(assignment: Mapping[int, int]) -> Dict[int, int]:
    """Number of vertices served by each center."""
    return dict(Counter(assignment.values()))


def compute_radius(distances: TreeDistances, assignment: Mapping[int, int]) -> int | float:
    """Compute the max distance from any vertex to its assigned center."""
    if not assignment:
        raise ValueError("Assignment is empty.")
    return max(distances.distance(v, c) for v, c in assignment.items())


def mean_assignment_distance(distances: TreeDistances, assignment: Mapping[int, int]) -> float:
    if not assignment:
        raise ValueError("Assignment is empty.")
    total = sum(distances.distance(v, c) for v, c in assignment.items())
    return float(total) / len(assignment)
