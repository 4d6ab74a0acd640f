"""Tile one logical RAM onto one physical memory kind.

Block RAMs have a fixed capacity and a configurable aspect ratio: a block
configured ``w`` bits wide is ``capacity_bits // w`` words deep.  A logical
RAM is covered by ``width_tiles`` blocks side by side and ``depth_tiles``
blocks in series.  :func:`tile` searches every configurable width for the
smallest block count; ties go to the widest configuration.

LUTRAM is modelled per bit: the logical RAM claims enough logic blocks to
hold its bits, with half the usable capacity per block in TrueDualPort mode.
The result is reported as a single tile of the logical shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import math

import numpy as np

from circuits import LogicalMemoryInstance
from fabric import KindParams, LutRamParams, PhysicalBlockKind, PortMode, RamParams


@dataclass(frozen=True)
class Tiling:
    """Cheapest implementation of one logical RAM on one physical kind.

    ``width_config``/``depth_config`` give the configured aspect ratio of a
    single block.  LUTRAM reports the logical shape as one tile and the
    logic-block count in ``blocks``.  ``extra_luts`` is the soft logic
    needed to stitch the depth tiles together; it is informational and not
    part of ``area``.
    """

    kind: PhysicalBlockKind
    width_config: int
    depth_config: int
    width_tiles: int
    depth_tiles: int
    blocks: int
    area: float
    extra_luts: int = 0


def effective_max_width(max_width: int, port_mode: PortMode) -> int:
    """Widest word usable per block for ``port_mode``."""
    if port_mode.is_true_dual_port:
        return max(1, max_width // 2)
    return max_width


def decoder_luts(series: int) -> int:
    """LUTs for the write-enable decoder of ``series`` chained blocks."""
    if series <= 1:
        return 0
    if series == 2:
        return 1
    return series


def mux_luts(series: int, width: int) -> int:
    """LUTs for a tree of 4:1 read multiplexers, one tree per output bit."""
    if series <= 1:
        return 0
    n = series
    nodes = 0
    while n > 1:
        n = (n + 3) // 4
        nodes += n
    return width * nodes


def stitching_luts(series: int, width: int, port_mode: PortMode) -> int:
    luts = decoder_luts(series) + mux_luts(series, width)
    # both ports need their own decode and read mux
    if series > 1 and port_mode.is_true_dual_port:
        luts *= 2
    return luts


def _tile_lutram(inst: LogicalMemoryInstance, params: LutRamParams) -> Tiling:
    usable = params.usable_bits
    if inst.port_mode.is_true_dual_port:
        usable /= 2.0
    # round first so that e.g. 480.0000000001 logic blocks stays 480
    blocks = max(1, math.ceil(round(inst.required_bits / usable, 9)))
    return Tiling(
        kind=PhysicalBlockKind.LUT_RAM,
        width_config=inst.width,
        depth_config=inst.depth,
        width_tiles=1,
        depth_tiles=1,
        blocks=blocks,
        area=float(blocks),
    )


def _tile_block_ram(
    inst: LogicalMemoryInstance, kind: PhysicalBlockKind, params: RamParams
) -> Optional[Tiling]:
    # widths above the capacity give zero-depth blocks
    max_w = min(effective_max_width(params.max_width, inst.port_mode), params.capacity_bits)
    widths = np.arange(1, max_w + 1, dtype=np.int64)
    depths = params.capacity_bits // widths
    usable = depths > 0
    widths, depths = widths[usable], depths[usable]

    width_tiles = -(-inst.width // widths)
    depth_tiles = -(-inst.depth // depths)
    if params.max_series is not None:
        usable = depth_tiles <= params.max_series
        widths, depths = widths[usable], depths[usable]
        width_tiles, depth_tiles = width_tiles[usable], depth_tiles[usable]
    if widths.size == 0:
        return None

    blocks = width_tiles * depth_tiles
    # widths are ascending, so the last minimum is the widest configuration
    idx = int(np.flatnonzero(blocks == blocks.min())[-1])

    n_blocks = int(blocks[idx])
    series = int(depth_tiles[idx])
    return Tiling(
        kind=kind,
        width_config=int(widths[idx]),
        depth_config=int(depths[idx]),
        width_tiles=int(width_tiles[idx]),
        depth_tiles=series,
        blocks=n_blocks,
        area=n_blocks * float(params.spacing),
        extra_luts=stitching_luts(series, inst.width, inst.port_mode),
    )


def tile(
    inst: LogicalMemoryInstance,
    kind: PhysicalBlockKind,
    params: Optional[KindParams],
) -> Optional[Tiling]:
    """Return the minimum-area tiling of ``inst`` on ``kind``.

    ``None`` is returned when the kind is disabled (``params`` is ``None``)
    or no configuration can host the instance.
    """

    if params is None:
        return None
    if kind is PhysicalBlockKind.LUT_RAM:
        if not isinstance(params, LutRamParams):
            raise TypeError(f"LUTRAM expects LutRamParams, got {type(params).__name__}")
        return _tile_lutram(inst, params)
    if not isinstance(params, RamParams):
        raise TypeError(f"{kind.value} expects RamParams, got {type(params).__name__}")
    return _tile_block_ram(inst, kind, params)


__all__ = [
    "Tiling",
    "decoder_luts",
    "effective_max_width",
    "mux_luts",
    "stitching_luts",
    "tile",
]
