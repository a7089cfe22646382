from __future__ import annotations

import argparse
import logging
import math
import time
import traceback
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
from sklearn.metrics import silhouette_score
from tqdm.auto import tqdm

from captree.algorithms import (
    CapacitatedTreeConfig,
    capacitated_tree_k_center,
    center_loads,
)
from captree.algorithms._shared import mean_assignment_distance
from captree.trees import TREE_SHAPES, TreeDistanceFactory, TreeDistances, random_tree

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

VARIANTS: Dict[str, CapacitatedTreeConfig] = {
    "keep_stale": CapacitatedTreeConfig(skip_assigned_candidates=False),
    "skip_assigned": CapacitatedTreeConfig(skip_assigned_candidates=True),
}


def _append_results(output_root: Path, shape: str, rows: List[Dict]) -> None:
    if not rows:
        return
    written = len(rows)
    df = pd.DataFrame(rows)
    output_path = output_root / f"{shape}.parquet"
    if output_path.exists():
        existing_df = pd.read_parquet(output_path)
        df = pd.concat([existing_df, df], ignore_index=True)
    df.to_parquet(output_path, index=False)
    logger.info(f"  Saved {written} results for {shape} to {output_path}")
    rows.clear()


def _save_partial_results(output_root: Path, tree_id: str, rows: List[Dict]) -> None:
    if not rows:
        return
    df = pd.DataFrame(rows)
    output_path = output_root / f"{tree_id}_partial.parquet"
    df.to_parquet(output_path, index=False)
    logger.info(f"  Saved {len(rows)} partial results to {output_path}")
    rows.clear()


def _query_grid(n: int, k_values: List[int], slacks: List[float]) -> List[Tuple[int, int]]:
    """(k, capacity) pairs; capacity = ceil(slack * n / k), tight at slack 1."""
    grid: List[Tuple[int, int]] = []
    for k in k_values:
        if k > n:
            continue
        for slack in slacks:
            pair = (k, max(1, math.ceil(slack * n / k)))
            if pair not in grid:
                grid.append(pair)
    return grid


def _silhouette_from_assignment(distances: TreeDistances, assignment: Dict[int, int]) -> float:
    vertices = np.arange(1, distances.n + 1)
    _, cluster_labels = np.unique([assignment[v] for v in vertices], return_inverse=True)
    n_clusters = int(cluster_labels.max()) + 1
    if not 2 <= n_clusters <= distances.n - 1:
        return float("nan")
    D = distances.matrix[np.ix_(vertices, vertices)].astype(float)
    return float(silhouette_score(D, cluster_labels, metric="precomputed"))


def _run_query_suite(
    distances: TreeDistances,
    tree_id: str,
    shape: str,
    seed: int,
    precompute_sec: float,
    grid: List[Tuple[int, int]],
) -> List[Dict]:
    rows: List[Dict] = []

    for k, capacity in grid:
        for variant, config in VARIANTS.items():
            try:
                t0 = time.perf_counter()
                radius, centers, assignment = capacitated_tree_k_center(
                    distances, capacity, k, config
                )
                t1 = time.perf_counter()

                loads = center_loads(assignment)
                rows.append(
                    {
                        "tree_id": tree_id,
                        "shape": shape,
                        "n": distances.n,
                        "seed": seed,
                        "k": k,
                        "capacity": capacity,
                        "variant": variant,
                        "radius": float(radius),
                        "centers_opened": len(centers),
                        "max_load": max(loads.values()),
                        "mean_distance": mean_assignment_distance(distances, assignment),
                        "silhouette": _silhouette_from_assignment(distances, assignment),
                        "precompute_sec": float(precompute_sec),
                        "runtime_sec": float(t1 - t0),
                    }
                )
            except Exception as exc:
                logger.warning(f"  Error solving {tree_id} (k={k}, C={capacity}, {variant}): {exc}")
                continue

    return rows


def run_experiments(
    output_root: Path,
    sizes: List[int],
    shapes: List[str],
    k_values: List[int],
    slacks: List[float],
    repetitions: int = 5,
    float_weights: bool = False,
    verbose: bool = False,
) -> None:
    """Run the capacitated tree k-center experiments.

    Args:
        output_root: Directory to save result Parquet files
        sizes: Tree sizes (number of vertices)
        shapes: Tree families to generate
        k_values: Numbers of centers to query per tree
        slacks: Capacity slack factors (capacity = ceil(slack * n / k))
        repetitions: Number of random trees per (shape, size)
        float_weights: If True, draw float instead of integer edge weights
        verbose: If True, enable DEBUG logging
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    output_root.mkdir(parents=True, exist_ok=True)
    factory = TreeDistanceFactory()

    processed_count = 0
    failed_count = 0

    for shape in tqdm(shapes, desc="Shapes", unit="shape"):
        for n in tqdm(sizes, desc="Sizes", leave=False):
            mem_gb = factory.estimate_memory(n)
            logger.info(f"Processing {shape} trees with n={n} (~{mem_gb:.4f} GB per matrix)")
            grid = _query_grid(n, k_values, slacks)

            for rep in range(repetitions):
                seed = rep
                tree_id = f"{shape}_n{n}_s{seed}"
                pending_rows: List[Dict] = []
                try:
                    tree = random_tree(n, shape=shape, integer_weights=not float_weights, seed=seed)
                    t0 = time.perf_counter()
                    distances = factory.get_distances(tree_id, tree)
                    precompute_sec = time.perf_counter() - t0

                    pending_rows = _run_query_suite(
                        distances, tree_id, shape, seed, precompute_sec, grid
                    )
                    _append_results(output_root, shape, pending_rows)
                    processed_count += 1
                except Exception as exc:
                    logger.error(f"Error processing tree {tree_id}: {exc}")
                    logger.error(traceback.format_exc())
                    _save_partial_results(output_root, tree_id, pending_rows)
                    failed_count += 1
                    continue
                finally:
                    factory.clear()

    logger.info("=" * 60)
    logger.info("Experiment summary:")
    logger.info(f"  Processed: {processed_count} trees")
    logger.info(f"  Failed: {failed_count} trees")
    logger.info(f"  Result files in: {output_root}")
    logger.info("=" * 60)


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run capacitated tree k-center experiments.")
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory where raw result Parquet files will be stored.",
    )
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[16, 32, 64, 128],
        help="Tree sizes (number of vertices).",
    )
    parser.add_argument(
        "--shapes",
        nargs="+",
        choices=TREE_SHAPES,
        default=list(TREE_SHAPES),
        help="Tree families to generate.",
    )
    parser.add_argument(
        "--k",
        type=int,
        nargs="+",
        default=[2, 4, 8],
        help="Numbers of centers to query on each tree.",
    )
    parser.add_argument(
        "--slack",
        type=float,
        nargs="+",
        default=[1.0, 1.5],
        help="Capacity slack factors; 1.0 gives the tight capacity ceil(n / k).",
    )
    parser.add_argument(
        "--repetitions",
        type=int,
        default=5,
        help="Number of random trees per (shape, size).",
    )
    parser.add_argument(
        "--float-weights",
        action="store_true",
        help="Draw float edge weights instead of integers.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )

    args = parser.parse_args(argv)
    run_experiments(
        args.output,
        sizes=args.sizes,
        shapes=args.shapes,
        k_values=args.k,
        slacks=args.slack,
        repetitions=args.repetitions,
        float_weights=args.float_weights,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    main()
