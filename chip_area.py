"""Physical FPGA area implied by a circuit's memory mapping.

The mapper scores fabrics in logic-block-equivalent units.  For reports it is
also useful to estimate the silicon area of the smallest chip that holds a
circuit: enough logic-block tiles for the circuit's own logic, the soft
logic that stitches block RAMs together and the LUTRAM, with block RAMs
placed every ``spacing`` tiles.

Areas are in the usual minimum-width-transistor units: a logic block averages
37500 and a block RAM follows :func:`block_ram_area`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable
import math

from fabric import FabricModel, PhysicalBlockKind
from mapper import CircuitResult, MappingResult, geometric_mean

AVG_LB_AREA = (35000.0 + 40000.0) / 2.0
LUTS_PER_LB = 10


@dataclass(frozen=True)
class ChipArea:
    logic_block_tiles: int
    ram1_sites: int
    ram2_sites: int
    area: float


def block_ram_area(bits: int, max_width: int) -> float:
    """Area of one block RAM of ``bits`` capacity and ``max_width`` ports."""
    return 9000.0 + 5.0 * bits + 90.0 * math.sqrt(bits) + 600.0 * 2.0 * max_width


def circuit_chip_area(result: CircuitResult, fabric: FabricModel) -> ChipArea:
    """Return the chip area needed by one mapped circuit."""
    blocks = result.blocks_by_kind()
    lutram_blocks = blocks[PhysicalBlockKind.LUT_RAM]
    extra_lbs = -(-result.extra_luts // LUTS_PER_LB)

    tiles = result.circuit.logic_blocks + extra_lbs + lutram_blocks
    if fabric.lutram is not None and lutram_blocks:
        tiles = max(tiles, math.ceil(lutram_blocks / fabric.lutram.lutram_fraction))

    rams = [
        (kind, fabric.params_for(kind))
        for kind in (PhysicalBlockKind.RAM1, PhysicalBlockKind.RAM2)
    ]
    for kind, params in rams:
        if params is not None:
            tiles = max(tiles, math.ceil(blocks[kind] * params.spacing))

    sites = {kind: 0 for kind, _ in rams}
    ram_area = 0.0
    for kind, params in rams:
        if params is None:
            continue
        sites[kind] = int(tiles // params.spacing)
        ram_area += sites[kind] * block_ram_area(params.capacity_bits, params.max_width)

    return ChipArea(
        logic_block_tiles=tiles,
        ram1_sites=sites[PhysicalBlockKind.RAM1],
        ram2_sites=sites[PhysicalBlockKind.RAM2],
        area=tiles * AVG_LB_AREA + ram_area,
    )


def chip_geometric_mean(areas: Iterable[ChipArea]) -> float:
    """Geometric mean over the chips with non-zero area, ``0.0`` if none."""
    positive = [a.area for a in areas if a.area > 0]
    if not positive:
        return 0.0
    return geometric_mean(positive)


def benchmark_chip_area(result: MappingResult) -> float:
    """Geometric mean FPGA area over every circuit of a mapped benchmark."""
    return chip_geometric_mean(
        circuit_chip_area(cres, result.fabric) for cres in result.circuits
    )


__all__ = [
    "AVG_LB_AREA",
    "ChipArea",
    "benchmark_chip_area",
    "block_ram_area",
    "chip_geometric_mean",
    "circuit_chip_area",
]
