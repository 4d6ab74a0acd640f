"""Logical memories and benchmark circuits.

The benchmark loader understands the two whitespace separated text files
shipped with the mapping benchmark:

``logical_rams.txt``
    A ``Num_Circuits N`` line, a header ``Circuit RamID Mode Depth Width``
    and one row per logical RAM.
``logic_block_count.txt``
    A header followed by ``Circuit NumLBs`` rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from fabric import PortMode

RAM_FIELDS: list[str] = ["Circuit", "RamID", "Mode", "Depth", "Width"]


@dataclass(frozen=True)
class LogicalMemoryInstance:
    """One logical RAM requested by a circuit."""

    width: int
    depth: int
    port_mode: PortMode
    ram_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width < 1 or self.depth < 1:
            raise ValueError(
                f"width and depth must be positive, got {self.width}x{self.depth}"
            )

    @property
    def required_bits(self) -> int:
        return self.width * self.depth


@dataclass(frozen=True)
class Circuit:
    name: str
    instances: Tuple[LogicalMemoryInstance, ...] = field(default_factory=tuple)
    logic_blocks: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "instances", tuple(self.instances))


def _int_cell(value: str, column: str, row: int, path: Path) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{path}:{row}: bad {column} {value!r}") from None


def _read_logic_blocks(path: Path) -> Dict[int, int]:
    df = pd.read_csv(path, sep=r"\s+", dtype=str)
    if df.shape[1] < 2:
        raise ValueError(f"{path}: expected two columns, got {list(df.columns)}")
    blocks: Dict[int, int] = {}
    # line numbers count the header as line 1
    for line, (cid, count) in enumerate(df.iloc[:, :2].itertuples(index=False), start=2):
        blocks[_int_cell(cid, "circuit id", line, path)] = _int_cell(
            count, "logic block count", line, path
        )
    return blocks


def _read_rams(path: Path) -> Dict[int, List[LogicalMemoryInstance]]:
    df = pd.read_csv(path, sep=r"\s+", skiprows=1, dtype=str)
    missing = set(RAM_FIELDS) - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing columns {sorted(missing)}")

    rams: Dict[int, List[LogicalMemoryInstance]] = {}
    for line, row in enumerate(df[RAM_FIELDS].itertuples(index=False), start=3):
        cid = _int_cell(row.Circuit, "circuit id", line, path)
        try:
            mode = PortMode.parse(str(row.Mode))
        except ValueError as exc:
            raise ValueError(f"{path}:{line}: {exc}") from None
        width = _int_cell(row.Width, "width", line, path)
        depth = _int_cell(row.Depth, "depth", line, path)
        ram_id = _int_cell(row.RamID, "ram id", line, path)
        try:
            inst = LogicalMemoryInstance(width, depth, mode, ram_id=ram_id)
        except ValueError as exc:
            raise ValueError(f"{path}:{line}: {exc}") from None
        rams.setdefault(cid, []).append(inst)
    return rams


def load_circuits(
    rams_path: str | Path, blocks_path: str | Path | None = None
) -> List[Circuit]:
    """Return the benchmark circuits sorted by numeric circuit id.

    Circuits that appear only in ``blocks_path`` are returned without logical
    RAMs.  Malformed rows raise :class:`ValueError`.
    """

    rams = _read_rams(Path(rams_path))
    blocks = _read_logic_blocks(Path(blocks_path)) if blocks_path is not None else {}

    circuits = []
    for cid in sorted(set(rams) | set(blocks)):
        circuits.append(
            Circuit(
                name=str(cid),
                instances=tuple(rams.get(cid, ())),
                logic_blocks=blocks.get(cid, 0),
            )
        )
    return circuits


__all__ = ["Circuit", "LogicalMemoryInstance", "load_circuits"]
