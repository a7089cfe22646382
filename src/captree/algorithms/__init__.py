from ._shared import InfeasibleCapacityError, center_loads, compute_radius
from .capacitated_tree import (
    CapacitatedTreeConfig,
    FeasibilityResult,
    capacitated_tree_k_center,
    check_radius,
)

__all__ = [
    "CapacitatedTreeConfig",
    "FeasibilityResult",
    "InfeasibleCapacityError",
    "capacitated_tree_k_center",
    "center_loads",
    "check_radius",
    "compute_radius",
]
