from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from circuits import Circuit
from fabric import ConfigError, FabricModel, PhysicalBlockKind, fabric_to_dict
from mapper import MappingError, map_benchmark

_SECTIONS = ("lutram", "ram1", "ram2")
_CASTS = {
    "lutram_fraction": float,
    "capacity_bits": int,
    "spacing": float,
    "max_width": int,
    "max_series": int,
}


@dataclass
class SweepPoint:
    value: float
    score: Optional[float]
    blocks: Dict[str, int]
    error: Optional[str] = None


def _split_factor(factor: str) -> tuple[str, str]:
    section, _, name = factor.partition(".")
    if section not in _SECTIONS or name not in _CASTS:
        raise KeyError(f"unknown sweep factor {factor!r}")
    return section, name


def apply_factor(base: FabricModel, factor: str, value: float) -> FabricModel:
    """Return ``base`` with the dotted ``factor`` field set to ``value``."""
    section, name = _split_factor(factor)
    params = getattr(base, section)
    if params is None:
        raise ConfigError(f"{section} is disabled in the base fabric")
    if not hasattr(params, name):
        raise KeyError(f"{section} has no field {name!r}")
    cast = _CASTS[name]
    if cast is int and not float(value).is_integer():
        raise ConfigError(f"{factor} must be an integer, got {value}")
    return replace(base, **{section: replace(params, **{name: cast(value)})})


def analyze_sweep(
    base: FabricModel,
    circuits: Sequence[Circuit],
    factor: str,
    grid: List[float],
    out_json: Path | None = None,
    out_csv: Path | None = None,
) -> Dict[str, Any]:
    """Evaluate ``circuits`` at every ``grid`` value of one fabric factor.

    Each point is evaluated independently.  Points whose fabric is invalid
    or cannot host every logical RAM are kept with ``score`` set to ``None``
    and the error message recorded.
    """

    _split_factor(factor)
    points: List[SweepPoint] = []
    for val in grid:
        try:
            fabric = apply_factor(base, factor, val)
            res = map_benchmark(circuits, fabric)
        except (ConfigError, MappingError) as exc:
            points.append(SweepPoint(value=float(val), score=None, blocks={}, error=str(exc)))
            continue
        blocks = {kind.value: 0 for kind in PhysicalBlockKind}
        for cres in res.circuits:
            for kind, count in cres.blocks_by_kind().items():
                blocks[kind.value] += count
        points.append(
            SweepPoint(value=float(val), score=res.geometric_mean_area, blocks=blocks)
        )

    feasible = [p for p in points if p.score is not None]
    best = min(feasible, key=lambda p: p.score) if feasible else None

    result = {
        "factor": factor,
        "grid": [float(v) for v in grid],
        "base_fabric": fabric_to_dict(base),
        "points": [
            {"value": p.value, "score": p.score, "blocks": p.blocks, "error": p.error}
            for p in points
        ],
        "best": None if best is None else {"value": best.value, "score": best.score},
    }

    if out_csv is not None:
        out_csv.parent.mkdir(parents=True, exist_ok=True)
        sweep_frame(result).to_csv(out_csv, index=False)
    if out_json is not None:
        out_json.parent.mkdir(parents=True, exist_ok=True)
        out_json.write_text(json.dumps(result, indent=2))
    return result


def sweep_frame(result: Dict[str, Any]) -> pd.DataFrame:
    """Flatten a sweep result into one row per grid value."""
    rows = []
    for p in result["points"]:
        row = {result["factor"]: p["value"], "score": p["score"], "error": p["error"] or ""}
        for kind in PhysicalBlockKind:
            row[f"{kind.value}_blocks"] = p["blocks"].get(kind.value, 0)
        rows.append(row)
    return pd.DataFrame(rows)


def plot_sweep(result: Dict[str, Any], path: Path) -> None:
    """Plot the geometric mean area against the swept factor."""
    import matplotlib.pyplot as plt

    df = sweep_frame(result).dropna(subset=["score"])
    fig, ax = plt.subplots(figsize=(6.0, 4.0))
    ax.plot(df[result["factor"]], df["score"], marker="o")
    if result["best"] is not None:
        ax.scatter(
            [result["best"]["value"]],
            [result["best"]["score"]],
            color="red",
            zorder=3,
            label="best",
        )
        ax.legend()
    ax.set_xlabel(result["factor"])
    ax.set_ylabel("Geometric mean area")
    ax.set_title("Architecture sweep")
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path)
    plt.close(fig)


__all__ = ["SweepPoint", "analyze_sweep", "apply_factor", "plot_sweep", "sweep_frame"]
