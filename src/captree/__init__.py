"""
captree - equal-capacity k-center on trees.

This package provides:
- an edge-weighted tree store and all-pairs tree distance precomputation
- the capacitated k-center feasibility check and radius search
- seeded random tree families
- experiment orchestration and analysis utilities
"""

from .algorithms import (
    CapacitatedTreeConfig,
    InfeasibleCapacityError,
    capacitated_tree_k_center,
    check_radius,
)
from .trees import InvalidTreeError, Tree, TreeDistances, compute_tree_distances

solve = capacitated_tree_k_center

__all__ = [
    "trees",
    "algorithms",
    "Tree",
    "TreeDistances",
    "CapacitatedTreeConfig",
    "InvalidTreeError",
    "InfeasibleCapacityError",
    "capacitated_tree_k_center",
    "check_radius",
    "compute_tree_distances",
    "solve",
]
