from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .tree import InvalidTreeError, Tree

logger = logging.getLogger(__name__)


def estimate_distance_matrix_memory(n_vertices: int, dtype_size: int = 8) -> float:
    """Return the memory footprint (in GB) of the (n+1)×(n+1) distance matrix."""
    side = n_vertices + 1
    return (side * side * dtype_size) / (1024 ** 3)


@dataclass(frozen=True)
class TreeDistances:
    """Precomputed all-pairs tree distances and root-to-vertex ancestor chains.

    Attributes
    ----------
    n:
        Number of vertices (vertices are ``1..n``).
    root:
        Vertex the ancestor chains hang from.
    matrix:
        Array of shape ``(n + 1, n + 1)``; ``matrix[a, b]`` is the tree
        distance between ``a`` and ``b``. Row and column 0 are unused.
    ancestors:
        ``ancestors[v]`` holds the vertices on the path root→v, inclusive,
        in root-to-leaf order. ``ancestors[0]`` is empty.
    universe:
        Ascending array of ``matrix[i, j]`` over all pairs ``i < j``;
        equal distances of different pairs are all kept.
    """

    n: int
    root: int
    matrix: np.ndarray
    ancestors: Tuple[np.ndarray, ...]
    universe: np.ndarray

    @property
    def dtype(self) -> np.dtype:
        return self.matrix.dtype

    @property
    def depth(self) -> np.ndarray:
        """Distances from the root to every vertex."""
        return self.matrix[self.root]

    def distance(self, a: int, b: int) -> int | float:
        return self.matrix[a, b].item()


def compute_tree_distances(tree: Tree, root: int = 1) -> TreeDistances:
    """Run one traversal per source vertex to fill the distance matrix.

    Traversals use an explicit stack, so deep (path-like) trees are fine.
    Sums are accumulated in the tree's weight dtype.
    """
    tree.validate()
    n = tree.n
    if isinstance(root, bool) or not isinstance(root, (int, np.integer)) or not 1 <= root <= n:
        raise InvalidTreeError(f"Root {root!r} is outside 1..{n}.")

    dtype = tree.dtype
    zero = dtype.type(0)
    adjacency = [
        [(v, dtype.type(w)) for v, w in tree.neighbors(s)] for s in range(1, n + 1)
    ]
    adjacency.insert(0, [])

    t0 = time.perf_counter()
    matrix = np.zeros((n + 1, n + 1), dtype=dtype)
    chains: List[Tuple[int, ...]] = [()] * (n + 1)
    pair_distances: List[np.generic] = []

    for beg in range(1, n + 1):
        row = matrix[beg]
        stack = [(beg, 0, zero)]
        while stack:
            s, parent, d = stack.pop()
            row[s] = d
            if beg == root:
                chains[s] = chains[parent] + (s,) if parent else (s,)
            if beg < s:
                pair_distances.append(d)
            for v, w in adjacency[s]:
                if v != parent:
                    stack.append((v, s, d + w))

    # One summation per pair: the lower triangle mirrors the rows of smaller sources.
    lower = np.tril_indices(n + 1, k=-1)
    matrix[lower] = matrix.T[lower]

    universe = np.sort(np.asarray(pair_distances, dtype=dtype))
    ancestors = tuple(np.asarray(chain, dtype=int) for chain in chains)
    logger.debug(
        f"Precomputed distances for n={n} (root={root}, dtype={dtype}) "
        f"in {time.perf_counter() - t0:.4f}s"
    )
    return TreeDistances(n=n, root=root, matrix=matrix, ancestors=ancestors, universe=universe)
