import json
from pathlib import Path

import pandas as pd
import pytest

from analysis.sweep import analyze_sweep, apply_factor, plot_sweep
from circuits import Circuit, LogicalMemoryInstance
from fabric import ConfigError, FabricModel, LutRamParams, PortMode, RamParams

SP = PortMode.SINGLE_PORT
BASE = FabricModel(ram1=RamParams(capacity_bits=8192, spacing=10, max_width=32))
CIRCUITS = [Circuit("0", [LogicalMemoryInstance(32, 256, SP)])]


def test_apply_factor():
    fabric = apply_factor(BASE, "ram1.capacity_bits", 4096.0)
    assert fabric.ram1 == RamParams(4096, 10, 32)
    assert BASE.ram1.capacity_bits == 8192
    with pytest.raises(ConfigError, match="disabled"):
        apply_factor(BASE, "ram2.spacing", 5)
    with pytest.raises(ConfigError, match="integer"):
        apply_factor(BASE, "ram1.capacity_bits", 8192.7)
    assert apply_factor(BASE, "ram1.spacing", 7.5).ram1.spacing == 7.5
    with pytest.raises(KeyError):
        apply_factor(BASE, "ram1.colour", 5)
    with pytest.raises(KeyError):
        apply_factor(FabricModel(lutram=LutRamParams()), "lutram.spacing", 5)


def test_spacing_sweep(tmp_path: Path):
    out = tmp_path / "sweep.json"
    csv_out = tmp_path / "sweep.csv"
    res = analyze_sweep(BASE, CIRCUITS, "ram1.spacing", [20.0, 5.0, 10.0], out, csv_out)
    scores = [p["score"] for p in res["points"]]
    assert scores == pytest.approx([20.0, 5.0, 10.0])
    assert res["best"] == {"value": 5.0, "score": pytest.approx(5.0)}
    assert res["points"][0]["blocks"]["Ram1"] == 1
    assert json.loads(out.read_text()) == json.loads(json.dumps(res))

    df = pd.read_csv(csv_out)
    assert df["ram1.spacing"].tolist() == [20.0, 5.0, 10.0]
    assert df["Ram1_blocks"].tolist() == [1, 1, 1]


def test_capacity_sweep_is_deterministic():
    grid = [1024.0, 4096.0, 16384.0]
    first = analyze_sweep(BASE, CIRCUITS, "ram1.capacity_bits", grid)
    second = analyze_sweep(BASE, CIRCUITS, "ram1.capacity_bits", grid)
    assert first == second
    scores = [p["score"] for p in first["points"]]
    assert scores[0] >= scores[1] >= scores[2]


def test_invalid_points_are_recorded():
    res = analyze_sweep(BASE, CIRCUITS, "ram1.max_width", [0.0, 32.0])
    assert res["points"][0]["score"] is None
    assert "max_width" in res["points"][0]["error"]
    assert res["best"]["value"] == 32.0

    limited = FabricModel(ram1=RamParams(8192, 10, 32, max_series=1))
    deep = [Circuit("0", [LogicalMemoryInstance(32, 16384, SP)])]
    res = analyze_sweep(limited, deep, "ram1.max_series", [1.0, 4.0])
    assert res["points"][0]["score"] is None
    assert "No legal mapping" in res["points"][0]["error"]
    assert res["points"][1]["score"] == pytest.approx(640.0)


def test_unknown_factor():
    with pytest.raises(KeyError):
        analyze_sweep(BASE, CIRCUITS, "ram3.spacing", [1.0])


def test_plot_sweep(tmp_path: Path):
    res = analyze_sweep(BASE, CIRCUITS, "ram1.spacing", [5.0, 10.0])
    png = tmp_path / "sweep.png"
    plot_sweep(res, png)
    assert png.exists() and png.stat().st_size > 0


def test_fractional_integer_factor_is_recorded():
    res = analyze_sweep(BASE, CIRCUITS, "ram1.max_width", [16.5, 32.0])
    assert res["points"][0]["score"] is None
    assert "must be an integer" in res["points"][0]["error"]
    assert res["best"] == {"value": 32.0, "score": pytest.approx(10.0)}
