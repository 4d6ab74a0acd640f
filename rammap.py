#!/usr/bin/env python3
"""Command line entry point for the logical RAM mapper.

``evaluate`` maps a benchmark onto one fabric and prints the geometric mean
area; ``sweep`` repeats the evaluation over a grid of one fabric parameter.
The fabric comes from the ten ``-p`` values, a YAML ``--config`` file or
the built-in defaults, in that order of preference.
"""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import List

from chip_area import benchmark_chip_area
from circuits import load_circuits
from fabric import (
    P_FLAG_NAMES,
    SCHEMA_PATH,
    default_fabric,
    fabric_to_dict,
    from_p_flags,
    load_fabric,
)
from mapper import MappingError, map_benchmark
from report import format_summary, write_circuit_csv, write_mappings


def _git_hash() -> str:
    """Return the current Git commit hash or ``unknown`` if unavailable."""
    try:
        return (
            subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
            .decode()
            .strip()
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def _file_hash(path: Path) -> str:
    """Return the SHA256 hash for the contents of ``path``."""
    h = hashlib.sha256()
    h.update(path.read_bytes())
    return h.hexdigest()


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--rams", type=Path, required=True, help="logical_rams.txt path")
    p.add_argument("--blocks", type=Path, default=None, help="logic_block_count.txt path")
    fab = p.add_mutually_exclusive_group()
    fab.add_argument(
        "-p",
        dest="p_flags",
        nargs=len(P_FLAG_NAMES),
        metavar="VALUE",
        default=None,
        help=" ".join(P_FLAG_NAMES),
    )
    fab.add_argument("--config", type=Path, default=None, help="Fabric YAML file")


def _fabric_from_args(args: argparse.Namespace):
    if args.p_flags is not None:
        return from_p_flags(args.p_flags)
    if args.config is not None:
        return load_fabric(args.config)
    return default_fabric()


def _parse_grid(text: str) -> List[float]:
    return [float(x) for x in text.split(",") if x.strip()]


def main(argv: List[str] | None = None) -> int:
    repo_path = Path(__file__).resolve().parent
    version_base = (repo_path / "VERSION").read_text().strip()

    parser = argparse.ArgumentParser(description="FPGA logical RAM mapper")
    parser.add_argument(
        "--version",
        action="version",
        version=f"{_git_hash()} {_file_hash(SCHEMA_PATH)} {version_base}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    eval_parser = sub.add_parser("evaluate", help="Map a benchmark onto one fabric")
    _add_common(eval_parser)
    eval_parser.add_argument("--mapping-out", type=Path, default=None)
    eval_parser.add_argument("--report", type=Path, default=None, help="Per-circuit CSV")
    eval_parser.add_argument("--json", action="store_true")

    sweep_parser = sub.add_parser("sweep", help="Sweep one fabric parameter")
    _add_common(sweep_parser)
    sweep_parser.add_argument(
        "--factor", type=str, required=True, help="e.g. ram1.capacity_bits"
    )
    sweep_parser.add_argument("--grid", type=str, required=True)
    sweep_parser.add_argument("--out", type=Path, required=True)
    sweep_parser.add_argument("--csv", type=Path, default=None)
    sweep_parser.add_argument("--plot", type=Path, default=None)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_usage()
        return 2

    try:
        fabric = _fabric_from_args(args)
        circuits = load_circuits(args.rams, args.blocks)
    except (ValueError, OSError) as exc:
        # ConfigError is a ValueError too
        parser.error(str(exc))

    if args.command == "sweep":
        from analysis.sweep import analyze_sweep, plot_sweep

        try:
            grid = _parse_grid(args.grid)
        except ValueError:
            parser.error("--grid must be comma separated numbers")
        try:
            result = analyze_sweep(fabric, circuits, args.factor, grid, args.out, args.csv)
        except KeyError as exc:
            parser.error(str(exc))
        if args.plot:
            plot_sweep(result, args.plot)
        if result["best"] is None:
            print("no feasible sweep point", file=sys.stderr)
            return 1
        print(f"{result['best']['value']:g} {result['best']['score']:.5e}")
        return 0

    try:
        result = map_benchmark(circuits, fabric)
    except MappingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.mapping_out:
        write_mappings(args.mapping_out, result)
    if args.report:
        write_circuit_csv(args.report, result)

    if args.json:
        json.dump(
            {
                "fabric": fabric_to_dict(fabric),
                "circuits": {c.circuit.name: c.area for c in result.circuits},
                "geometric_mean_area": result.geometric_mean_area,
                "geometric_mean_chip_area": benchmark_chip_area(result),
            },
            sys.stdout,
        )
        sys.stdout.write("\n")
    else:
        print(format_summary(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
