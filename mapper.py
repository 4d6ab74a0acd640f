"""Map benchmark circuits onto a fabric and score the result.

:func:`evaluate` is the single entry point used by the command line tool and
the sweep analysis.  It maps every logical RAM independently with
:func:`selector.select`, sums the selected areas per circuit and combines
the circuit areas into a geometric mean, the objective minimised by an
architecture sweep.  The geometric mean keeps large circuits from dominating
the comparison.

A circuit without logical RAMs has zero area; it contributes the neutral
value ``1`` to the geometric mean so that benchmark sets containing trivial
circuits stay comparable.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple
import logging

import numpy as np

from circuits import Circuit, LogicalMemoryInstance
from fabric import ConfigError, FabricModel, PhysicalBlockKind
from selector import MappingError, NoFeasibleImplementation, Selection, select

_log = logging.getLogger(__name__)


class EmptyBenchmarkSet(MappingError):
    """Raised when a benchmark set contains no circuits."""


@dataclass(frozen=True)
class InstanceResult:
    index: int
    instance: LogicalMemoryInstance
    selection: Selection


@dataclass(frozen=True)
class CircuitResult:
    circuit: Circuit
    instances: Tuple[InstanceResult, ...]
    area: float

    def blocks_by_kind(self) -> Dict[PhysicalBlockKind, int]:
        """Physical blocks used per kind, including kinds left unused."""
        counts = Counter({kind: 0 for kind in PhysicalBlockKind})
        for res in self.instances:
            counts[res.selection.kind] += res.selection.tiling.blocks
        return dict(counts)

    @property
    def extra_luts(self) -> int:
        return sum(r.selection.tiling.extra_luts for r in self.instances)


@dataclass(frozen=True)
class MappingResult:
    fabric: FabricModel
    circuits: Tuple[CircuitResult, ...]
    geometric_mean_area: float


def geometric_mean(values: Iterable[float]) -> float:
    """Return ``exp(mean(ln(v)))`` bounded by the smallest and largest value."""
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        raise EmptyBenchmarkSet("geometric mean of an empty benchmark set")
    gm = float(np.exp(np.mean(np.log(arr))))
    # rounding in exp/log can leave the mean a hair outside the range
    return float(np.clip(gm, arr.min(), arr.max()))


def _select_located(circuit: Circuit, fabric: FabricModel) -> List[InstanceResult]:
    results = []
    for idx, inst in enumerate(circuit.instances):
        try:
            sel = select(inst, fabric)
        except NoFeasibleImplementation as exc:
            raise exc.located(circuit.name, idx) from None
        results.append(InstanceResult(index=idx, instance=inst, selection=sel))
    return results


def map_circuit(circuit: Circuit, fabric: FabricModel) -> CircuitResult:
    instances = _select_located(circuit, fabric)
    area = float(sum(r.selection.area for r in instances))
    _log.debug(
        "circuit %s: %d logical RAMs, area %.3f", circuit.name, len(instances), area
    )
    return CircuitResult(circuit=circuit, instances=tuple(instances), area=area)


def aggregate(circuit: Circuit, fabric: FabricModel) -> float:
    """Return the summed minimum area of every logical RAM in ``circuit``."""
    return map_circuit(circuit, fabric).area


def _score_areas(areas: Sequence[float]) -> float:
    return geometric_mean(a if a > 0 else 1.0 for a in areas)


def score(circuits: Sequence[Circuit], fabric: FabricModel) -> float:
    """Return the geometric mean of circuit areas across ``circuits``."""
    if not circuits:
        raise EmptyBenchmarkSet("no circuits to score")
    return _score_areas([aggregate(c, fabric) for c in circuits])


def map_benchmark(circuits: Sequence[Circuit], fabric: FabricModel) -> MappingResult:
    """Map every circuit and return per-instance, per-circuit and overall results."""
    fabric.validate()
    if not circuits:
        raise EmptyBenchmarkSet("no circuits to map")
    results = tuple(map_circuit(c, fabric) for c in circuits)
    gm = _score_areas([r.area for r in results])
    _log.info("mapped %d circuits, geometric mean area %.5e", len(results), gm)
    return MappingResult(fabric=fabric, circuits=results, geometric_mean_area=gm)


def evaluate(fabric: FabricModel, circuits: Sequence[Circuit]) -> float:
    """Validate ``fabric`` and return the geometric mean area of ``circuits``."""
    fabric.validate()
    return score(circuits, fabric)


__all__ = [
    "CircuitResult",
    "ConfigError",
    "EmptyBenchmarkSet",
    "InstanceResult",
    "MappingError",
    "MappingResult",
    "NoFeasibleImplementation",
    "aggregate",
    "evaluate",
    "geometric_mean",
    "map_benchmark",
    "map_circuit",
    "score",
]
