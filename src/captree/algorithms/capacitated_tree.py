from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from captree.trees.distances import TreeDistances

from ._shared import TreeLike, normalize_tree_input, validate_k_capacity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacitatedTreeConfig:
    """Configuration for the equal-capacity tree k-center search.

    Attributes
    ----------
    skip_assigned_candidates:
        The candidate queue is built once per check and is not pruned as
        vertices get assigned. With ``False`` a popped entry is opened as a
        center even if its vertex is already served by an earlier center.
        With ``True`` such entries are discarded on pop (lazy deletion) and
        each opened center always serves itself, filling its remaining
        ``capacity - 1`` slots farthest-from-root first.
    """

    skip_assigned_candidates: bool = False


@dataclass(frozen=True)
class FeasibilityResult:
    """Outcome of one feasibility check.

    ``assignment`` maps each served vertex to its center; on a failed check
    the vertices left uncovered are absent from it.
    """

    feasible: bool
    centers: List[int] = field(default_factory=list)
    assignment: Dict[int, int] = field(default_factory=dict)


def _covering_ancestor_depths(distances: TreeDistances, radius) -> np.ndarray:
    """Depth of f(i), the closest-to-root ancestor of i within ``radius`` of i."""
    depth = distances.depth
    f_depth = np.empty(distances.n + 1, dtype=depth.dtype)
    for i in range(1, distances.n + 1):
        chain_depths = depth[distances.ancestors[i]]
        # i closes its own chain at distance 0, so some entry always qualifies.
        first = int(np.argmax(depth[i] - chain_depths <= radius))
        f_depth[i] = chain_depths[first]
    return f_depth


def check_radius(
    distances: TreeDistances,
    k: int,
    capacity: int,
    radius,
    config: CapacitatedTreeConfig | None = None,
) -> FeasibilityResult:
    """Greedy decision procedure: can k centers of the given capacity cover
    every vertex within ``radius``?

    Vertices are anchored deepest covering-ancestor first; each opened
    center takes the unassigned vertices within ``radius``, farthest from
    the root first, up to ``capacity`` of them.
    """
    if config is None:
        config = CapacitatedTreeConfig()
    if radius < 0:
        return FeasibilityResult(feasible=False)

    n = distances.n
    depth = distances.depth
    f_depth = _covering_ancestor_depths(distances, radius)
    queue: List[Tuple[object, int]] = [(-f_depth[i], i) for i in range(1, n + 1)]
    heapq.heapify(queue)

    unassigned = np.ones(n + 1, dtype=bool)
    unassigned[0] = False
    remaining = n
    centers: List[int] = []
    assignment: Dict[int, int] = {}

    while remaining and len(centers) < k and queue:
        _, center = heapq.heappop(queue)
        if config.skip_assigned_candidates and not unassigned[center]:
            continue
        centers.append(center)

        reachable = np.flatnonzero(unassigned & (distances.matrix[center] <= radius))
        # Stable sort keeps ascending ids among vertices at equal depth.
        order = np.argsort(-depth[reachable], kind="stable")
        ordered = reachable[order]
        if config.skip_assigned_candidates:
            # The center keeps a slot for itself, so every unassigned vertex
            # still owns a queue entry and the queue cannot run dry first.
            others = ordered[ordered != center][: capacity - 1]
            served = np.concatenate(([center], others))
        else:
            served = ordered[:capacity]

        unassigned[served] = False
        remaining -= served.size
        for v in served.tolist():
            assignment[v] = center

    return FeasibilityResult(feasible=remaining == 0, centers=centers, assignment=assignment)


def capacitated_tree_k_center(
    T: TreeLike,
    capacity: int,
    k: int,
    config: CapacitatedTreeConfig | None = None,
) -> Tuple[int | float, List[int], Dict[int, int]]:
    """Minimum radius for k centers of equal capacity on a tree.

    The optimum is a pairwise tree distance, so the search runs over the
    sorted distance universe; the last feasible check is repeated at the
    returned radius to materialise its centers and assignment.

    Parameters
    ----------
    T:
        A :class:`~captree.trees.Tree` or its precomputed ``TreeDistances``.
    capacity:
        Maximum number of vertices any center may serve.
    k:
        Maximum number of centers to open.
    config:
        Optional configuration (candidate-queue behaviour).

    Returns
    -------
    radius:
        Minimum feasible radius, as a Python scalar of the tree's weight type.
    centers:
        Opened centers in opening order.
    assignment:
        Center serving each vertex ``1..n``.
    """
    if config is None:
        config = CapacitatedTreeConfig()

    validate_k_capacity(k, capacity, T.n)
    distances = normalize_tree_input(T)
    universe = distances.universe

    if universe.size == 0:
        # Single vertex: it serves itself at distance 0.
        return distances.dtype.type(0).item(), [1], {1: 1}

    lo, hi = 0, universe.size - 1
    while lo < hi:
        mid = (lo + hi) // 2
        result = check_radius(distances, k, capacity, universe[mid], config)
        logger.debug(f"check(radius={universe[mid]}) -> {result.feasible} [lo={lo}, hi={hi}]")
        if result.feasible:
            hi = mid
        else:
            lo = mid + 1

    radius = universe[lo]
    result = check_radius(distances, k, capacity, radius, config)
    if not result.feasible:
        raise RuntimeError(f"Feasibility check failed at the searched radius {radius}.")

    logger.debug(f"Optimal radius {radius} with {len(result.centers)} centers")
    return radius.item(), result.centers, result.assignment
