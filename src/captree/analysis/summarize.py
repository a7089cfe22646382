from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, List

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd

GROUP_COLS = ["shape", "n", "variant"]
METRICS = ["radius", "centers_opened", "max_load", "mean_distance", "silhouette", "runtime_sec"]


def _format_mean_std(mean_val: float | None, std_val: float | None, precision: int = 3) -> str:
    if mean_val is None or std_val is None or pd.isna(mean_val):
        return "N/A"
    if pd.isna(std_val):
        std_val = 0.0
    fmt = f"{{:.{precision}f}} ± {{:.{precision}f}}"
    return fmt.format(mean_val, std_val)


def _load_raw(raw_root: Path) -> pd.DataFrame:
    parts: List[pd.DataFrame] = []
    parquet_files = sorted(p for p in raw_root.glob("*.parquet") if not p.stem.endswith("_partial"))
    if not parquet_files:
        raise FileNotFoundError(
            f"No Parquet files found under {raw_root}. "
            f"Make sure experiments completed successfully and generated result files."
        )
    print(f"Loading {len(parquet_files)} result files from {raw_root}")
    for p in parquet_files:
        try:
            parts.append(pd.read_parquet(p))
        except Exception as e:
            print(f"Warning: Failed to load {p}: {e}")
            continue
    if not parts:
        raise FileNotFoundError(f"Could not load any Parquet files from {raw_root}")
    return pd.concat(parts, ignore_index=True)


def _aggregate(df: pd.DataFrame) -> pd.DataFrame:
    agg = df.groupby(GROUP_COLS, dropna=False)[METRICS].agg(["mean", "std"])
    # Flatten MultiIndex columns
    agg.columns = [f"{m}_{stat}" for m, stat in agg.columns]
    return agg.reset_index()


def _variant_gap(df: pd.DataFrame) -> pd.DataFrame:
    """Per query, how much lazy deletion of assigned candidates lowers the radius."""
    keys = ["tree_id", "shape", "n", "k", "capacity"]
    wide = df.pivot_table(index=keys, columns="variant", values="radius").reset_index()
    if not {"keep_stale", "skip_assigned"} <= set(wide.columns):
        return pd.DataFrame()
    wide["radius_gap"] = wide["keep_stale"] - wide["skip_assigned"]
    return wide


def _create_shape_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Create table comparing tree families aggregated over sizes."""
    rows = []
    for (shape, variant), data in summary.groupby(["shape", "variant"]):
        rows.append(
            {
                "Shape": shape,
                "Variant": variant,
                "Radius": _format_mean_std(
                    float(data["radius_mean"].mean()), float(data["radius_std"].mean())
                ),
                "Max load": _format_mean_std(
                    float(data["max_load_mean"].mean()), float(data["max_load_std"].mean()), 1
                ),
                "Silhouette": _format_mean_std(
                    float(data["silhouette_mean"].mean()), float(data["silhouette_std"].mean())
                ),
                "Runtime (s)": _format_mean_std(
                    float(data["runtime_sec_mean"].mean()),
                    float(data["runtime_sec_std"].mean()),
                    precision=4,
                ),
            }
        )
    return pd.DataFrame(rows)


def _save_table_artifacts(summary: pd.DataFrame, gap: pd.DataFrame, output_root: Path) -> None:
    output_root.mkdir(parents=True, exist_ok=True)

    summary.to_parquet(output_root / "summary.parquet", index=False)
    summary.to_csv(output_root / "summary.csv", index=False)

    shape_table = _create_shape_table(summary)
    latex = shape_table.to_latex(index=False, escape=False, float_format=None)
    latex = latex.replace(" ± ", " $\\pm$ ")
    (output_root / "table_shape_comparison.tex").write_text(latex, encoding="utf-8")
    shape_table.to_csv(output_root / "table_shape_comparison.csv", index=False)

    if not gap.empty:
        gap.to_csv(output_root / "variant_gap.csv", index=False)

    meta: Dict = {
        "tables": ["table_shape_comparison", "variant_gap"],
        "group_by": GROUP_COLS,
        "description": "Aggregated results for the capacitated tree k-center experiments.",
    }
    (output_root / "summary.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")


def _plot_against_size(summary: pd.DataFrame, output_root: Path, metric: str, ylabel: str) -> Path:
    """Line plot of a metric against tree size, one line per (shape, variant)."""
    fig, ax = plt.subplots(figsize=(8, 4))
    for (shape, variant), sub in summary.groupby(["shape", "variant"]):
        sub = sub.sort_values("n")
        ax.plot(sub["n"], sub[f"{metric}_mean"], marker="o", label=f"{shape} / {variant}")

    ax.set_xlabel("Number of vertices")
    ax.set_ylabel(ylabel)
    ax.set_title(f"{ylabel} by tree size")
    ax.legend(fontsize="small")
    fig.tight_layout()

    img_path = output_root / f"{metric}_by_size.png"
    fig.savefig(img_path, dpi=200)
    plt.close(fig)
    return img_path


def summarize(raw_root: Path, output_root: Path) -> pd.DataFrame:
    raw_df = _load_raw(raw_root)
    summary = _aggregate(raw_df)
    _save_table_artifacts(summary, _variant_gap(raw_df), output_root)
    _plot_against_size(summary, output_root, metric="radius", ylabel="Radius")
    _plot_against_size(summary, output_root, metric="runtime_sec", ylabel="Runtime (s)")
    return summary


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Aggregate capacitated tree k-center results.")
    parser.add_argument(
        "--raw",
        type=Path,
        required=True,
        help="Directory containing raw Parquet logs.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory for summary tables and plots.",
    )

    args = parser.parse_args(argv)
    summarize(args.raw, args.output)


if __name__ == "__main__":
    main()
