from __future__ import annotations

from typing import Dict, Tuple

from .distances import TreeDistances, compute_tree_distances, estimate_distance_matrix_memory
from .tree import Tree


class TreeDistanceFactory:
    """Factory for computing and caching tree distance precomputations.

    The factory is responsible for:
    - running the all-pairs precomputation for a tree and root;
    - optionally caching the result keyed by (tree_id, root), so several
      (k, capacity) queries on one tree share a single precomputation;
    - estimating memory requirements for distance matrices.
    """

    def __init__(self) -> None:
        self._cache: Dict[Tuple[str, int], TreeDistances] = {}

    @staticmethod
    def estimate_memory(n_vertices: int, dtype_size: int = 8) -> float:
        """Estimate memory required for a distance matrix in GB."""
        return estimate_distance_matrix_memory(n_vertices, dtype_size)

    def get_distances(
        self,
        tree_id: str,
        tree: Tree,
        root: int = 1,
        use_cache: bool = True,
    ) -> TreeDistances:
        """Return (and optionally cache) the distance precomputation for a tree."""
        key = (tree_id, root)
        if use_cache and key in self._cache:
            return self._cache[key]

        distances = compute_tree_distances(tree, root=root)
        if use_cache:
            self._cache[key] = distances
        return distances

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
