"""Render mapping results as text, CSV and mapping files."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pandas as pd

from chip_area import benchmark_chip_area, circuit_chip_area
from fabric import FabricModel, PhysicalBlockKind
from mapper import MappingResult

CIRCUIT_FIELDS: list[str] = [
    "circuit",
    "logical_rams",
    "lutram_blocks",
    "ram1_blocks",
    "ram2_blocks",
    "extra_luts",
    "ram_area",
    "logic_block_tiles",
    "chip_area",
]


def mapping_lines(result: MappingResult) -> List[str]:
    """Return one line per logical RAM in the benchmark mapping format.

    Lines are ordered by circuit, then by RAM id.  Each logical RAM is its
    own sharing group since physical blocks are never shared.
    """

    lines = []
    group = 0
    for cres in result.circuits:
        rows = []
        for ires in cres.instances:
            inst = ires.instance
            t = ires.selection.tiling
            ram_id = inst.ram_id if inst.ram_id is not None else ires.index
            rows.append(
                (
                    ram_id,
                    f"{cres.circuit.name} {ram_id} {t.extra_luts} "
                    f"LW {inst.width} LD {inst.depth} ID {group + ires.index} "
                    f"S {t.depth_tiles} P {t.width_tiles} Type {t.kind.type_id} "
                    f"Mode {inst.port_mode.value} W {t.width_config} D {t.depth_config}",
                )
            )
        group += len(cres.instances)
        lines.extend(line for _, line in sorted(rows, key=lambda r: r[0]))
    return lines


def write_mappings(path: str | Path, result: MappingResult) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(f"{line}\n" for line in mapping_lines(result)))


def circuit_table(result: MappingResult, fabric: FabricModel | None = None) -> pd.DataFrame:
    """Return one row per circuit with block usage, RAM area and chip area."""
    fabric = fabric or result.fabric
    rows = []
    for cres in result.circuits:
        blocks = cres.blocks_by_kind()
        chip = circuit_chip_area(cres, fabric)
        rows.append(
            {
                "circuit": cres.circuit.name,
                "logical_rams": len(cres.instances),
                "lutram_blocks": blocks[PhysicalBlockKind.LUT_RAM],
                "ram1_blocks": blocks[PhysicalBlockKind.RAM1],
                "ram2_blocks": blocks[PhysicalBlockKind.RAM2],
                "extra_luts": cres.extra_luts,
                "ram_area": cres.area,
                "logic_block_tiles": chip.logic_block_tiles,
                "chip_area": chip.area,
            }
        )
    return pd.DataFrame(rows, columns=CIRCUIT_FIELDS)


def write_circuit_csv(
    path: str | Path, result: MappingResult, fabric: FabricModel | None = None
) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    circuit_table(result, fabric).to_csv(path, index=False, float_format="%.3f")


def format_summary(result: MappingResult) -> str:
    """Return a human-readable summary of ``result``."""
    totals = {kind: 0 for kind in PhysicalBlockKind}
    n_rams = 0
    for cres in result.circuits:
        n_rams += len(cres.instances)
        for kind, count in cres.blocks_by_kind().items():
            totals[kind] += count

    lines = [
        f"{'circuits':<20} {len(result.circuits)}",
        f"{'logical RAMs':<20} {n_rams}",
    ]
    for kind in PhysicalBlockKind:
        lines.append(f"{kind.value + ' blocks':<20} {totals[kind]}")
    lines.append(f"{'geomean chip area':<20} {benchmark_chip_area(result):.5e}")
    lines.append(f"{'geomean area':<20} {result.geometric_mean_area:.5e}")
    return "\n".join(lines)


__all__ = [
    "CIRCUIT_FIELDS",
    "circuit_table",
    "format_summary",
    "mapping_lines",
    "write_circuit_csv",
    "write_mappings",
]
