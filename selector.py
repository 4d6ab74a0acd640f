"""Pick the cheapest physical memory kind for one logical RAM."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
import logging

from circuits import LogicalMemoryInstance
from fabric import FabricModel, PhysicalBlockKind
from tiler import Tiling, tile

_log = logging.getLogger(__name__)


class MappingError(Exception):
    """Base class for failures while mapping a benchmark."""


class NoFeasibleImplementation(MappingError):
    """No enabled physical kind can host a logical RAM."""

    def __init__(
        self,
        instance: LogicalMemoryInstance,
        circuit: Optional[str] = None,
        index: Optional[int] = None,
    ) -> None:
        self.instance = instance
        self.circuit = circuit
        self.index = index
        where = []
        if circuit is not None:
            where.append(f"circuit {circuit}")
        if index is not None:
            where.append(f"instance {index}")
        if instance.ram_id is not None:
            where.append(f"RAM {instance.ram_id}")
        location = ", ".join(where) or "logical RAM"
        super().__init__(
            f"No legal mapping for {location} "
            f"({instance.port_mode.value} {instance.width}x{instance.depth}) "
            "under the current memory configuration"
        )

    def located(self, circuit: str, index: int) -> "NoFeasibleImplementation":
        """Return a copy of this error tagged with its circuit and index."""
        return NoFeasibleImplementation(self.instance, circuit=circuit, index=index)


@dataclass(frozen=True)
class Selection:
    kind: PhysicalBlockKind
    area: float
    tiling: Tiling


def candidates(inst: LogicalMemoryInstance, fabric: FabricModel) -> List[Tiling]:
    """Return the feasible tiling of ``inst`` for every enabled kind."""
    out = []
    for kind, params in fabric.enabled():
        res = tile(inst, kind, params)
        if res is not None:
            out.append(res)
    return out


def select(inst: LogicalMemoryInstance, fabric: FabricModel) -> Selection:
    """Return the minimum-area implementation of ``inst``.

    Kinds are tried in priority order ``LutRam < Ram1 < Ram2`` and a later
    kind only wins with a strictly smaller area.
    """

    best: Optional[Tiling] = None
    for res in candidates(inst, fabric):
        if best is None or res.area < best.area:
            best = res
    if best is None:
        raise NoFeasibleImplementation(inst)
    _log.debug(
        "%s %dx%d -> %s x%d (area %.3f)",
        inst.port_mode.value,
        inst.width,
        inst.depth,
        best.kind.value,
        best.blocks,
        best.area,
    )
    return Selection(kind=best.kind, area=best.area, tiling=best)


__all__ = ["MappingError", "NoFeasibleImplementation", "Selection", "candidates", "select"]
