from .distances import TreeDistances, compute_tree_distances, estimate_distance_matrix_memory
from .factory import TreeDistanceFactory
from .generators import TREE_SHAPES, random_tree
from .tree import InvalidTreeError, Tree

__all__ = [
    "Tree",
    "TreeDistances",
    "TreeDistanceFactory",
    "InvalidTreeError",
    "TREE_SHAPES",
    "compute_tree_distances",
    "estimate_distance_matrix_memory",
    "random_tree",
]
