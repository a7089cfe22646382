from __future__ import annotations

from typing import Literal, Tuple

import numpy as np

from .tree import Tree

TreeShape = Literal["recursive", "path", "star", "caterpillar", "binary"]
TREE_SHAPES: Tuple[str, ...] = ("recursive", "path", "star", "caterpillar", "binary")


def _parents(shape: str, n: int, rng: np.random.Generator) -> np.ndarray:
    """Parent of each vertex 2..n (index 0 is vertex 2); parents precede children."""
    children = np.arange(2, n + 1)
    if shape == "recursive":
        # Uniform random recursive tree: attach to any earlier vertex.
        return np.array([int(rng.integers(1, v)) for v in children], dtype=int)
    if shape == "path":
        return children - 1
    if shape == "star":
        return np.ones(n - 1, dtype=int)
    if shape == "binary":
        return children // 2
    if shape == "caterpillar":
        spine = max(1, n // 2)
        parents = np.empty(n - 1, dtype=int)
        for idx, v in enumerate(children):
            parents[idx] = v - 1 if v <= spine else int(rng.integers(1, spine + 1))
        return parents
    raise ValueError(f"Unknown tree shape: {shape!r}")


def random_tree(
    n: int,
    shape: TreeShape = "recursive",
    weight_range: Tuple[int | float, int | float] = (1, 10),
    integer_weights: bool = True,
    seed: int | None = None,
) -> Tree:
    """Build a seeded random tree of the given shape on vertices ``1..n``.

    Vertex labels are shuffled (root 1 is kept) so that vertex ids do not
    encode the construction order. Integer weights are drawn uniformly from
    ``[low, high]``, float weights from ``[low, high)``.
    """
    if n < 1:
        raise ValueError("n must be >= 1.")
    low, high = weight_range
    if low < 0 or low > high:
        raise ValueError("weight_range must satisfy 0 <= low <= high.")

    rng = np.random.default_rng(seed)
    parents = _parents(shape, n, rng)

    labels = np.arange(n + 1)
    labels[2:] = rng.permutation(np.arange(2, n + 1))

    tree = Tree(n, dtype=np.int64 if integer_weights else np.float64)
    for child, parent in zip(range(2, n + 1), parents):
        if integer_weights:
            w: int | float = int(rng.integers(int(low), int(high) + 1))
        else:
            w = float(rng.uniform(low, high))
        tree.add_edge(int(labels[parent]), int(labels[child]), w)
    return tree
