"""Physical memory resources of an FPGA-like fabric.

A :class:`FabricModel` describes one point of an architecture sweep: which
physical memory kinds are available (LUT-based distributed memory and up to
two block-RAM kinds) and their parameters.  Instances are immutable; a new
model is built for every sweep point.

Two loaders are provided.  :func:`from_p_flags` parses the ten-value ``-p``
sequence accepted by the command line tool and :func:`load_fabric` reads a
YAML description validated against ``schemas/fabric.schema.json``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence, Tuple, Union
import json
import logging

import jsonschema
import yaml

# One logic block holds 10 LUTs of 64 bits each.
LOGIC_BLOCK_BITS = 640

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "fabric.schema.json"

_log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised for fabric configurations that cannot be evaluated."""


class PortMode(Enum):
    ROM = "ROM"
    SINGLE_PORT = "SinglePort"
    SIMPLE_DUAL_PORT = "SimpleDualPort"
    TRUE_DUAL_PORT = "TrueDualPort"

    @classmethod
    def parse(cls, text: str) -> "PortMode":
        """Return the mode named ``text`` as written in benchmark files."""
        try:
            return cls(text.strip())
        except ValueError:
            raise ValueError(f"Unknown RAM mode: {text!r}") from None

    @property
    def is_true_dual_port(self) -> bool:
        return self is PortMode.TRUE_DUAL_PORT


class PhysicalBlockKind(Enum):
    """Physical memory kinds in selection priority order."""

    LUT_RAM = "LutRam"
    RAM1 = "Ram1"
    RAM2 = "Ram2"

    @property
    def type_id(self) -> int:
        return _TYPE_IDS[self]


_PRIORITY: Tuple[PhysicalBlockKind, ...] = (
    PhysicalBlockKind.LUT_RAM,
    PhysicalBlockKind.RAM1,
    PhysicalBlockKind.RAM2,
)
_TYPE_IDS = {kind: i + 1 for i, kind in enumerate(_PRIORITY)}


@dataclass(frozen=True)
class LutRamParams:
    """LUTRAM availability.

    Parameters
    ----------
    lutram_fraction : float
        Fraction of a logic block's capacity that may be claimed as
        distributed memory, in ``(0, 1]``.
    """

    lutram_fraction: float = 0.75

    def __post_init__(self) -> None:
        if not 0.0 < self.lutram_fraction <= 1.0:
            raise ConfigError(
                f"lutram_fraction must lie in (0, 1], got {self.lutram_fraction}"
            )

    @property
    def usable_bits(self) -> float:
        """Bits of one logic block usable as memory."""
        return self.lutram_fraction * LOGIC_BLOCK_BITS


@dataclass(frozen=True)
class RamParams:
    """Block-RAM parameters.

    Parameters
    ----------
    capacity_bits : int
        Total bits held by one physical block.
    spacing : float
        Logic-block-equivalent area charged per block used.
    max_width : int
        Widest word one block exposes outside TrueDualPort mode.
    max_series : int, optional
        Largest number of blocks that may be chained in depth.  ``None``
        leaves the depth tiling unbounded.
    """

    capacity_bits: int
    spacing: float
    max_width: int
    max_series: Optional[int] = None

    def __post_init__(self) -> None:
        if self.capacity_bits < 1:
            raise ConfigError(f"capacity_bits must be positive, got {self.capacity_bits}")
        if self.spacing <= 0:
            raise ConfigError(f"spacing must be positive, got {self.spacing}")
        if self.max_width < 1:
            raise ConfigError(f"max_width must be positive, got {self.max_width}")
        if self.max_series is not None and self.max_series < 1:
            raise ConfigError(f"max_series must be positive, got {self.max_series}")


KindParams = Union[LutRamParams, RamParams]


@dataclass(frozen=True)
class FabricModel:
    """Enabled physical memory kinds for one sweep point."""

    lutram: Optional[LutRamParams] = None
    ram1: Optional[RamParams] = None
    ram2: Optional[RamParams] = None

    def validate(self) -> None:
        """Raise :class:`ConfigError` unless at least one kind is enabled."""
        if self.lutram is None and self.ram1 is None and self.ram2 is None:
            raise ConfigError(
                "At least one memory type (LUTRAM, RAM1 or RAM2) must be enabled"
            )

    def params_for(self, kind: PhysicalBlockKind) -> Optional[KindParams]:
        if kind is PhysicalBlockKind.LUT_RAM:
            return self.lutram
        if kind is PhysicalBlockKind.RAM1:
            return self.ram1
        return self.ram2

    def enabled(self) -> Iterator[Tuple[PhysicalBlockKind, KindParams]]:
        """Yield ``(kind, params)`` for enabled kinds in priority order."""
        for kind in _PRIORITY:
            params = self.params_for(kind)
            if params is not None:
                yield kind, params


# ---------------------------------------------------------------------------
# Loaders

DEFAULT_LUTRAM = LutRamParams(lutram_fraction=0.75)
DEFAULT_RAM1 = RamParams(capacity_bits=8192, spacing=10, max_width=32)
DEFAULT_RAM2 = RamParams(capacity_bits=128 * 1024, spacing=300, max_width=128)

P_FLAG_NAMES = (
    "has_lutram",
    "lutram_fraction",
    "has_ram1",
    "ram1_bits",
    "lbs_per_ram1",
    "max_width_ram1",
    "has_ram2",
    "ram2_bits",
    "lbs_per_ram2",
    "max_width_ram2",
)


def default_fabric() -> FabricModel:
    return FabricModel(lutram=DEFAULT_LUTRAM, ram1=DEFAULT_RAM1, ram2=DEFAULT_RAM2)


def _parse_bool(text: str) -> Optional[bool]:
    value = text.strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    return None


def _flag(values: Sequence[str], name: str, cast, default):
    raw = values[P_FLAG_NAMES.index(name)]
    if cast is bool:
        parsed = _parse_bool(raw)
    else:
        try:
            parsed = cast(raw)
        except ValueError:
            parsed = None
    if parsed is None:
        _log.warning("could not parse %s=%r, keeping default %s", name, raw, default)
        return default
    return parsed


def from_p_flags(values: Sequence[str]) -> FabricModel:
    """Build a fabric from the ``-p`` value sequence.

    The ten values are, in order, ``has_lutram lutram_fraction has_ram1
    ram1_bits lbs_per_ram1 max_width_ram1 has_ram2 ram2_bits lbs_per_ram2
    max_width_ram2``.  A value that fails to parse keeps its default.
    """

    if len(values) < len(P_FLAG_NAMES):
        raise ConfigError(
            f"-p expects {len(P_FLAG_NAMES)} values: {' '.join(P_FLAG_NAMES)}"
        )

    has_lutram = _flag(values, "has_lutram", bool, True)
    fraction = _flag(values, "lutram_fraction", float, DEFAULT_LUTRAM.lutram_fraction)
    if not 0.0 < fraction <= 1.0:
        _log.warning(
            "lutram_fraction %s is not in (0, 1], keeping default %s",
            fraction,
            DEFAULT_LUTRAM.lutram_fraction,
        )
        fraction = DEFAULT_LUTRAM.lutram_fraction

    rams = {}
    for idx, default in ((1, DEFAULT_RAM1), (2, DEFAULT_RAM2)):
        enabled = _flag(values, f"has_ram{idx}", bool, True)
        bits = _flag(values, f"ram{idx}_bits", int, default.capacity_bits)
        spacing = _flag(values, f"lbs_per_ram{idx}", int, default.spacing)
        width = _flag(values, f"max_width_ram{idx}", int, default.max_width)
        rams[idx] = RamParams(bits, spacing, width) if enabled else None

    fabric = FabricModel(
        lutram=LutRamParams(fraction) if has_lutram else None,
        ram1=rams[1],
        ram2=rams[2],
    )
    fabric.validate()
    return fabric


def _load_schema(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def load_fabric(path: str | Path, schema_path: Path | None = None) -> FabricModel:
    """Load a fabric description from a YAML file.

    Sections ``lutram``, ``ram1`` and ``ram2`` are optional; an absent or
    ``null`` section disables that kind.
    """

    raw = yaml.safe_load(Path(path).read_text()) or {}
    validator = jsonschema.Draft202012Validator(_load_schema(schema_path or SCHEMA_PATH))
    try:
        validator.validate(raw)
    except jsonschema.ValidationError as exc:
        field = "/".join(str(p) for p in exc.path) or "<root>"
        raise ConfigError(f"{field}: {exc.message}") from exc

    lutram = raw.get("lutram")
    ram1 = raw.get("ram1")
    ram2 = raw.get("ram2")
    fabric = FabricModel(
        lutram=LutRamParams(**lutram) if lutram is not None else None,
        ram1=RamParams(**ram1) if ram1 is not None else None,
        ram2=RamParams(**ram2) if ram2 is not None else None,
    )
    fabric.validate()
    return fabric


def fabric_to_dict(fabric: FabricModel) -> Dict[str, Optional[dict]]:
    """Return a JSON-serialisable description of ``fabric``."""
    return {
        "lutram": asdict(fabric.lutram) if fabric.lutram is not None else None,
        "ram1": asdict(fabric.ram1) if fabric.ram1 is not None else None,
        "ram2": asdict(fabric.ram2) if fabric.ram2 is not None else None,
    }


__all__ = [
    "ConfigError",
    "FabricModel",
    "KindParams",
    "LOGIC_BLOCK_BITS",
    "LutRamParams",
    "PhysicalBlockKind",
    "PortMode",
    "RamParams",
    "default_fabric",
    "fabric_to_dict",
    "from_p_flags",
    "load_fabric",
]
