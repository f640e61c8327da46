# geoshard/sharding/table.py
"""Shards and the immutable table that partitions the domain into them."""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union
import json
import math

import numpy as np
import pyproj
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from ..config import config
from ..foundations.types import SerializationError, InvalidTableError
from ..grid_systems.cell_id import CellId, cover_range, validate_level
from ..infrastructure.logging import get_logger, log_operation
from ..utils.json_utils import dumps

logger = get_logger(__name__)

FORMAT_VERSION = 1


@dataclass(frozen=True)
class Shard:
    """A contiguous run of the tiling holding a bounded amount of heat.

    ``start`` and ``end`` are the tokens of the first and last region merged
    into the shard; the shard owns every leaf between them.
    """
    name: str
    storage_level: int
    start: str
    end: str
    cell_count: int
    heat: float

    @property
    def start_cell(self) -> CellId:
        return CellId.from_token(self.start)

    @property
    def end_cell(self) -> CellId:
        return CellId.from_token(self.end)

    def range_min(self) -> int:
        return self.start_cell.range_min()

    def range_max(self) -> int:
        return self.end_cell.range_max()

    def contains_cell(self, cell: CellId) -> bool:
        """True if every leaf of ``cell`` belongs to this shard."""
        return self.range_min() <= cell.range_min() and cell.range_max() <= self.range_max()

    def covering(self) -> List[CellId]:
        """Minimal list of cells exactly covering the shard."""
        return cover_range(self.range_min(), self.range_max())

    def footprint(self) -> BaseGeometry:
        """Union of the covering cells as a shapely geometry."""
        return unary_union([cell.polygon() for cell in self.covering()])

    def area_km2(self) -> float:
        """Geodesic area of the footprint."""
        geod = pyproj.Geod(ellps=config.get('search.ellipsoid', 'WGS84'))
        area = sum(abs(geod.geometry_area_perimeter(cell.polygon())[0]) for cell in self.covering())
        return area / 1e6

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shard':
        try:
            return cls(
                name=str(data['name']),
                storage_level=int(data['storage_level']),
                start=str(data['start']),
                end=str(data['end']),
                cell_count=int(data['cell_count']),
                heat=float(data['heat']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed shard record {data!r}: {e}") from e


class GeoshardTable:
    """
    Ordered, contiguous shards spanning the whole tiling.

    The partition is checked on construction and the table never changes
    afterwards; a rebuild produces a new table.
    """

    def __init__(self,
                 shards: Iterable[Shard],
                 storage_level: int,
                 min_heat: float,
                 max_heat: float):
        self._shards: Tuple[Shard, ...] = tuple(shards)
        self.storage_level = validate_level(storage_level)
        self.min_heat = min_heat
        self.max_heat = max_heat
        self._validate()

    def _validate(self):
        if not self._shards:
            raise InvalidTableError("A shard table needs at least one shard")
        if not (math.isfinite(self.min_heat) and math.isfinite(self.max_heat)):
            raise InvalidTableError(
                f"Heat thresholds must be finite, got min_heat={self.min_heat!r} max_heat={self.max_heat!r}"
            )

        root = CellId.root()
        names = set()
        expected = root.range_min()
        for shard in self._shards:
            try:
                start, end = shard.start_cell, shard.end_cell
            except ValueError as e:
                raise InvalidTableError(f"Shard {shard.name} has a bad token: {e}") from e
            if not (start.is_valid() and end.is_valid()):
                raise InvalidTableError(f"Shard {shard.name} has an invalid start or end cell")
            if shard.name in names:
                raise InvalidTableError(f"Duplicate shard name: {shard.name}")
            names.add(shard.name)
            if not math.isfinite(shard.heat) or shard.heat < 0:
                raise InvalidTableError(f"Shard {shard.name} has invalid heat {shard.heat!r}")
            if start.range_min() != expected:
                raise InvalidTableError(
                    f"Shard {shard.name} starts at leaf {start.range_min()}, expected {expected}"
                )
            if end.range_max() < start.range_min():
                raise InvalidTableError(f"Shard {shard.name} ends before it starts")
            expected = end.range_max() + 2

        if expected != root.range_max() + 2:
            raise InvalidTableError("Shards do not cover the whole domain")

    # === Access ===

    @property
    def shards(self) -> Tuple[Shard, ...]:
        return self._shards

    def __len__(self) -> int:
        return len(self._shards)

    def __iter__(self) -> Iterator[Shard]:
        return iter(self._shards)

    def __getitem__(self, index: int) -> Shard:
        return self._shards[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeoshardTable):
            return NotImplemented
        return (self._shards == other._shards
                and self.storage_level == other.storage_level
                and self.min_heat == other.min_heat
                and self.max_heat == other.max_heat)

    def __hash__(self) -> int:
        return hash((self._shards, self.storage_level, self.min_heat, self.max_heat))

    def __repr__(self) -> str:
        return (f"GeoshardTable(shards={len(self._shards)}, storage_level={self.storage_level}, "
                f"heat=[{self.min_heat}, {self.max_heat}])")

    def total_heat(self) -> float:
        return float(sum(shard.heat for shard in self._shards))

    def statistics(self) -> Dict[str, Any]:
        """Summary of the heat distribution over the shards."""
        heats = np.array([shard.heat for shard in self._shards], dtype=np.float64)
        out_of_range = int(np.count_nonzero((heats < self.min_heat) | (heats > self.max_heat)))
        return {
            'shard_count': len(self._shards),
            'total_heat': float(heats.sum()),
            'min_heat': float(heats.min()),
            'max_heat': float(heats.max()),
            'mean_heat': float(heats.mean()),
            'std_heat': float(heats.std()),
            'out_of_range': out_of_range,
        }

    # === Serialization ===

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': FORMAT_VERSION,
            'storage_level': self.storage_level,
            'min_heat': self.min_heat,
            'max_heat': self.max_heat,
            'shards': [shard.to_dict() for shard in self._shards],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        if indent is None:
            indent = config.get('table.indent')
        return dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeoshardTable':
        if not isinstance(data, dict):
            raise SerializationError(f"Table document must be an object, got {type(data).__name__}")
        version = data.get('version', FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise SerializationError(f"Unsupported table format version: {version!r}")
        records = data.get('shards')
        if not isinstance(records, list):
            raise SerializationError("Table document has no 'shards' list")

        shards = [Shard.from_dict(record) for record in records]
        try:
            storage_level = int(data['storage_level'])
            min_heat = float(data['min_heat'])
            max_heat = float(data['max_heat'])
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed table header: {e}") from e
        return cls(shards, storage_level, min_heat, max_heat)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> 'GeoshardTable':
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Table is not valid JSON: {e}") from e
        return cls.from_dict(data)

    deserialize = from_json

    @log_operation("save_table")
    def save(self, path: Union[str, Path], indent: Optional[int] = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(indent=indent), encoding='utf-8')
        logger.info(f"Saved {len(self)} shards to {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'GeoshardTable':
        path = Path(path)
        table = cls.from_json(path.read_text(encoding='utf-8'))
        logger.info(f"Loaded {len(table)} shards from {path}")
        return table
