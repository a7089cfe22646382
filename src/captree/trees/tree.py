from __future__ import annotations

import math
from numbers import Real
from typing import Iterator, List, Tuple

import numpy as np
from numpy.typing import DTypeLike

Weight = int | float


class InvalidTreeError(ValueError):
    """Raised when the edges added to a :class:`Tree` do not form a tree."""


class Tree:
    """Edge-weighted undirected tree on vertices ``1..n``.

    Adjacency is stored per vertex as an ordered list of ``(neighbor, weight)``
    pairs, in the order edges were added. The weight type is fixed per
    instance: either given explicitly through ``dtype`` or inferred from the
    added weights (``int64`` for integers, ``float64`` once a float appears).
    """

    def __init__(self, n: int, dtype: DTypeLike | None = None) -> None:
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
            raise InvalidTreeError("n must be a positive integer.")
        self.n = int(n)
        self._adj: List[List[Tuple[int, Weight]]] = [[] for _ in range(self.n + 1)]
        self._edges: List[Tuple[int, int, Weight]] = []
        self._dtype: np.dtype | None = None
        self._inferred_dtype: np.dtype | None = None
        if dtype is not None:
            self._dtype = _check_dtype(np.dtype(dtype))

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    @property
    def dtype(self) -> np.dtype:
        """Weight dtype used for every distance computed on this tree."""
        if self._dtype is not None:
            return self._dtype
        if self._inferred_dtype is None:
            if not self._edges:
                return np.dtype(np.int64)
            inferred = np.asarray([w for _, _, w in self._edges]).dtype
            self._inferred_dtype = _check_dtype(inferred)
        return self._inferred_dtype

    def add_edge(self, u: int, v: int, w: Weight) -> None:
        """Add the undirected edge ``{u, v}`` with weight ``w``."""
        self._check_vertex(u)
        self._check_vertex(v)
        if u == v:
            raise InvalidTreeError(f"Self loop on vertex {u} is not allowed.")
        if isinstance(w, bool) or not isinstance(w, Real):
            raise InvalidTreeError(f"Edge weight must be a real number, got {w!r}.")
        if not math.isfinite(w) or w < 0:
            raise InvalidTreeError(f"Edge weight must be finite and non-negative, got {w!r}.")
        if self._dtype is not None and not _representable(w, self._dtype):
            raise InvalidTreeError(f"Edge weight {w!r} is not representable as {self._dtype}.")
        if len(self._edges) >= self.n - 1:
            raise InvalidTreeError(f"A tree on {self.n} vertices has exactly {self.n - 1} edges.")

        u, v = int(u), int(v)
        self._adj[u].append((v, w))
        self._adj[v].append((u, w))
        self._edges.append((u, v, w))
        self._inferred_dtype = None

    def neighbors(self, v: int) -> List[Tuple[int, Weight]]:
        self._check_vertex(v)
        return list(self._adj[v])

    def edges(self) -> Iterator[Tuple[int, int, Weight]]:
        return iter(self._edges)

    def validate(self) -> None:
        """Check that the edges form a spanning tree (connected and acyclic)."""
        if len(self._edges) != self.n - 1:
            raise InvalidTreeError(
                f"Expected {self.n - 1} edges for {self.n} vertices, got {len(self._edges)}."
            )

        seen = np.zeros(self.n + 1, dtype=bool)
        seen[1] = True
        stack = [(1, 0)]
        while stack:
            s, parent = stack.pop()
            skipped_parent = False
            for v, _ in self._adj[s]:
                if v == parent and not skipped_parent:
                    skipped_parent = True
                    continue
                if seen[v]:
                    raise InvalidTreeError(f"Edges contain a cycle through vertex {v}.")
                seen[v] = True
                stack.append((v, s))

        missing = np.flatnonzero(~seen[1:]) + 1
        if missing.size:
            raise InvalidTreeError(
                f"Tree is disconnected: {missing.size} vertices unreachable from vertex 1."
            )

    def _check_vertex(self, v: int) -> None:
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)) or not 1 <= v <= self.n:
            raise InvalidTreeError(f"Vertex {v!r} is outside 1..{self.n}.")

    def __repr__(self) -> str:
        return f"Tree(n={self.n}, edges={len(self._edges)}, dtype={self.dtype})"


def _representable(w: Weight, dtype: np.dtype) -> bool:
    # Float dtypes round; only integer dtypes must hold the weight exactly.
    if dtype.kind == "f":
        return True
    try:
        return bool(np.asarray(w, dtype=dtype) == w)
    except OverflowError:
        return False


def _check_dtype(dtype: np.dtype) -> np.dtype:
    if dtype.kind not in ("i", "f"):
        raise InvalidTreeError(f"Weight dtype must be a signed integer or float type, got {dtype}.")
    return dtype
