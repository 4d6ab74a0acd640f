import math

import pytest

from circuits import Circuit, LogicalMemoryInstance
from fabric import (
    ConfigError,
    FabricModel,
    LutRamParams,
    PhysicalBlockKind,
    PortMode,
    RamParams,
    default_fabric,
)
from mapper import (
    EmptyBenchmarkSet,
    NoFeasibleImplementation,
    aggregate,
    evaluate,
    geometric_mean,
    map_benchmark,
    map_circuit,
    score,
)

SP = PortMode.SINGLE_PORT
RAM1_ONLY = FabricModel(ram1=RamParams(capacity_bits=8192, spacing=10, max_width=32))
FULL = LogicalMemoryInstance(32, 256, SP)


def _circuit(name, *instances):
    return Circuit(name=name, instances=instances)


def test_single_instance_scenario():
    assert evaluate(RAM1_ONLY, [_circuit("c", FULL)]) == pytest.approx(10.0)
    double = LogicalMemoryInstance(32, 512, SP)
    assert evaluate(RAM1_ONLY, [_circuit("c", double)]) == pytest.approx(20.0)


def test_true_dual_port_scenario():
    inst = LogicalMemoryInstance(40, 100, PortMode.TRUE_DUAL_PORT)
    assert aggregate(_circuit("c", inst), RAM1_ONLY) == pytest.approx(30.0)


def test_aggregate_sums_instances():
    circuit = _circuit("c", FULL, LogicalMemoryInstance(32, 512, SP), FULL)
    assert aggregate(circuit, RAM1_ONLY) == pytest.approx(40.0)


def test_score_is_geometric_mean():
    small = _circuit("a", FULL)
    big = _circuit("b", *([FULL] * 4))
    assert score([small, big], RAM1_ONLY) == pytest.approx(20.0)


def test_empty_circuit_is_neutral():
    empty = _circuit("empty")
    big = _circuit("b", *([FULL] * 10))
    assert aggregate(empty, RAM1_ONLY) == 0.0
    assert score([empty, big], RAM1_ONLY) == pytest.approx(10.0)


def test_empty_benchmark_set():
    with pytest.raises(EmptyBenchmarkSet):
        score([], RAM1_ONLY)
    with pytest.raises(EmptyBenchmarkSet):
        evaluate(RAM1_ONLY, [])
    with pytest.raises(EmptyBenchmarkSet):
        map_benchmark([], RAM1_ONLY)


def test_evaluate_rejects_empty_fabric():
    with pytest.raises(ConfigError):
        evaluate(FabricModel(), [_circuit("c", FULL)])


def test_evaluate_is_deterministic():
    circuits = [
        _circuit("a", FULL, LogicalMemoryInstance(7, 3000, PortMode.ROM)),
        _circuit("b", LogicalMemoryInstance(72, 900, PortMode.TRUE_DUAL_PORT)),
        _circuit("c", LogicalMemoryInstance(3, 12, PortMode.SIMPLE_DUAL_PORT)),
    ]
    first = evaluate(default_fabric(), circuits)
    second = evaluate(default_fabric(), circuits)
    assert first == second
    assert map_benchmark(circuits, default_fabric()).geometric_mean_area == first


def test_score_within_circuit_area_bounds():
    circuits = [
        _circuit("a", FULL),
        _circuit("b", *([FULL] * 3)),
        _circuit("c", LogicalMemoryInstance(100, 10000, SP)),
        _circuit("d", FULL, FULL),
    ]
    areas = [aggregate(c, RAM1_ONLY) for c in circuits]
    gm = score(circuits, RAM1_ONLY)
    assert min(areas) <= gm <= max(areas)


def test_geometric_mean_bounds_hold_for_equal_values():
    assert geometric_mean([0.1] * 7) == 0.1
    assert geometric_mean([3.0, 12.0]) == pytest.approx(6.0)
    assert geometric_mean([2.0]) == 2.0


def test_lutram_only_fabric_never_infeasible():
    fabric = FabricModel(lutram=LutRamParams(0.75))
    circuits = [
        _circuit(str(i), *(LogicalMemoryInstance(w, d, m) for m in PortMode))
        for i, (w, d) in enumerate(((1, 1), (16, 1024), (128, 32768)))
    ]
    gm = evaluate(fabric, circuits)
    assert math.isfinite(gm) and gm > 0


def test_infeasible_instance_is_located():
    fabric = FabricModel(ram1=RamParams(8192, 10, 32, max_series=1))
    circuit = _circuit("c7", FULL, LogicalMemoryInstance(32, 100000, SP))
    with pytest.raises(NoFeasibleImplementation, match="circuit c7, instance 1") as info:
        evaluate(fabric, [circuit])
    assert info.value.circuit == "c7"
    assert info.value.index == 1


def test_map_circuit_block_counts():
    circuit = _circuit("c", FULL, LogicalMemoryInstance(1, 16, SP), LogicalMemoryInstance(32, 512, SP))
    res = map_circuit(circuit, default_fabric())
    blocks = res.blocks_by_kind()
    assert blocks[PhysicalBlockKind.RAM1] == 3
    assert blocks[PhysicalBlockKind.LUT_RAM] == 1
    assert blocks[PhysicalBlockKind.RAM2] == 0
    assert res.area == pytest.approx(31.0)
    assert res.extra_luts == 33
    assert [r.index for r in res.instances] == [0, 1, 2]
