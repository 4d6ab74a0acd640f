from pathlib import Path

import pandas as pd
import pytest

from circuits import Circuit, LogicalMemoryInstance
from fabric import FabricModel, PortMode, RamParams
from mapper import map_benchmark
from report import (
    CIRCUIT_FIELDS,
    circuit_table,
    format_summary,
    mapping_lines,
    write_circuit_csv,
    write_mappings,
)

SP = PortMode.SINGLE_PORT
FABRIC = FabricModel(ram1=RamParams(capacity_bits=8192, spacing=10, max_width=32))


def _result():
    circuits = [
        Circuit(
            "0",
            [
                LogicalMemoryInstance(32, 256, SP, ram_id=0),
                LogicalMemoryInstance(32, 512, SP, ram_id=1),
            ],
            logic_blocks=100,
        ),
        Circuit("1", [LogicalMemoryInstance(40, 100, PortMode.TRUE_DUAL_PORT, ram_id=0)]),
    ]
    return map_benchmark(circuits, FABRIC)


def test_mapping_lines():
    assert mapping_lines(_result()) == [
        "0 0 0 LW 32 LD 256 ID 0 S 1 P 1 Type 2 Mode SinglePort W 32 D 256",
        "0 1 33 LW 32 LD 512 ID 1 S 2 P 1 Type 2 Mode SinglePort W 32 D 256",
        "1 0 0 LW 40 LD 100 ID 2 S 1 P 3 Type 2 Mode TrueDualPort W 16 D 512",
    ]


def test_mapping_lines_sorted_by_ram_id():
    circuits = [
        Circuit(
            "5",
            [
                LogicalMemoryInstance(8, 8, SP, ram_id=3),
                LogicalMemoryInstance(8, 8, SP, ram_id=1),
            ],
        )
    ]
    lines = mapping_lines(map_benchmark(circuits, FABRIC))
    assert [line.split()[1] for line in lines] == ["1", "3"]


def test_write_mappings(tmp_path: Path):
    out = tmp_path / "ram_mapped.txt"
    write_mappings(out, _result())
    assert out.read_text().splitlines() == mapping_lines(_result())


def test_circuit_table(tmp_path: Path):
    df = circuit_table(_result())
    assert list(df.columns) == CIRCUIT_FIELDS
    assert df["ram1_blocks"].tolist() == [3, 3]
    assert df["ram_area"].tolist() == pytest.approx([30.0, 30.0])
    assert df["logic_block_tiles"].tolist() == [104, 30]

    out = tmp_path / "results.csv"
    write_circuit_csv(out, _result())
    back = pd.read_csv(out, dtype={"circuit": str})
    assert back["circuit"].tolist() == ["0", "1"]
    assert back["chip_area"].tolist() == pytest.approx(df["chip_area"].tolist(), rel=1e-6)


def test_format_summary():
    text = format_summary(_result())
    lines = text.splitlines()
    assert lines[0].split() == ["circuits", "2"]
    assert "Ram1 blocks" in text
    assert lines[-1].startswith("geomean area")
    assert float(lines[-1].split()[-1]) == pytest.approx(30.0, rel=1e-4)
