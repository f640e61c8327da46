# geoshard/grid_systems/cell_id.py
"""
Hierarchical quadtree tiling of the longitude/latitude rectangle.

Cells are plain 64-bit identifiers. A cell at level ``L`` whose Z-order
(Morton) index is ``m`` has the id ``((m << 1) | 1) << 2 * (MAX_LEVEL - L)``,
so the lowest set bit encodes the level and the bits above it the position.
This gives three properties the shard builder relies on:

- parent/children are derived arithmetically, no tree is stored;
- ids sort in Z-order at every level;
- every cell covers the contiguous interval ``[range_min, range_max]`` of
  leaf ids, so runs of neighbouring cells collapse into one id range.

Boundary policy: each axis is split half-open ``[lo, hi)``; the domain's
upper edges (``lng == 180``, ``lat == 90``) are clamped into the last
column/row. A point on a shared edge therefore belongs to the cell to its
east/north.
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np
from shapely.geometry import Point, Polygon, box

from ..foundations.types import OutOfDomainError, EmptyGeometryError

MAX_LEVEL = 30
NUM_CHILDREN = 4

MIN_LNG, MIN_LAT, MAX_LNG, MAX_LAT = -180.0, -90.0, 180.0, 90.0
DOMAIN_BOUNDS = (MIN_LNG, MIN_LAT, MAX_LNG, MAX_LAT)

_LEAF_DIM = 1 << MAX_LEVEL
_ID_LIMIT = 1 << (2 * MAX_LEVEL + 1)

_SPREAD_MASKS = (
    (16, 0x0000FFFF0000FFFF),
    (8, 0x00FF00FF00FF00FF),
    (4, 0x0F0F0F0F0F0F0F0F),
    (2, 0x3333333333333333),
    (1, 0x5555555555555555),
)


def _spread(v: int) -> int:
    """Spread the low 30 bits of v to the even bit positions."""
    v &= _LEAF_DIM - 1
    for shift, mask in _SPREAD_MASKS:
        v = (v | (v << shift)) & mask
    return v


def _compact(v: int) -> int:
    """Inverse of _spread."""
    v &= 0x5555555555555555
    v = (v | (v >> 1)) & 0x3333333333333333
    v = (v | (v >> 2)) & 0x0F0F0F0F0F0F0F0F
    v = (v | (v >> 4)) & 0x00FF00FF00FF00FF
    v = (v | (v >> 8)) & 0x0000FFFF0000FFFF
    v = (v | (v >> 16)) & 0x00000000FFFFFFFF
    return v


def lsb_for_level(level: int) -> int:
    """Lowest set bit of any cell id at the given level."""
    return 1 << (2 * (MAX_LEVEL - level))


def validate_level(level: int) -> int:
    """Check that the tiling can represent ``level``."""
    if isinstance(level, bool) or not isinstance(level, (int, np.integer)):
        raise EmptyGeometryError(f"Tiling level must be an integer, got {level!r}")
    if not 0 <= level <= MAX_LEVEL:
        raise EmptyGeometryError(
            f"Tiling level {level} outside supported range [0, {MAX_LEVEL}]"
        )
    return int(level)


def validate_coordinate(lat: float, lng: float) -> Tuple[float, float]:
    """Check a coordinate against the geographic domain."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise OutOfDomainError(f"Coordinate ({lat!r}, {lng!r}) is not numeric", lat, lng)

    if math.isnan(lat_f) or math.isnan(lng_f):
        raise OutOfDomainError(f"Coordinate ({lat}, {lng}) contains NaN", lat, lng)
    if not MIN_LAT <= lat_f <= MAX_LAT:
        raise OutOfDomainError(f"Latitude {lat} outside [{MIN_LAT}, {MAX_LAT}]", lat, lng)
    if not MIN_LNG <= lng_f <= MAX_LNG:
        raise OutOfDomainError(f"Longitude {lng} outside [{MIN_LNG}, {MAX_LNG}]", lat, lng)
    return lat_f, lng_f


def _axis_index(value: float, lo: float, span: float, size: int) -> int:
    idx = int(math.floor((value - lo) / span * size))
    return min(max(idx, 0), size - 1)


@dataclass(frozen=True, order=True)
class CellId:
    """A cell of the quadtree tiling, identified by its 64-bit id."""

    id: int

    # === Construction ===

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float, level: int = MAX_LEVEL) -> 'CellId':
        """Cell at ``level`` containing the coordinate."""
        lat, lng = validate_coordinate(lat, lng)
        level = validate_level(level)
        i = _axis_index(lng, MIN_LNG, MAX_LNG - MIN_LNG, _LEAF_DIM)
        j = _axis_index(lat, MIN_LAT, MAX_LAT - MIN_LAT, _LEAF_DIM)
        leaf = cls.from_ij(i, j, MAX_LEVEL)
        return leaf if level == MAX_LEVEL else leaf.parent(level)

    @classmethod
    def from_ij(cls, i: int, j: int, level: int) -> 'CellId':
        """Cell from its column ``i`` and row ``j`` at ``level``."""
        level = validate_level(level)
        size = 1 << level
        if not (0 <= i < size and 0 <= j < size):
            raise ValueError(f"Cell index ({i}, {j}) outside level {level} grid of {size}x{size}")
        morton = _spread(i) | (_spread(j) << 1)
        return cls(((morton << 1) | 1) << (2 * (MAX_LEVEL - level)))

    @classmethod
    def from_token(cls, token: str) -> 'CellId':
        """Parse a token produced by :meth:`to_token`."""
        if not isinstance(token, str) or not token:
            raise ValueError(f"Invalid cell token: {token!r}")
        if token == 'X':
            return cls(0)
        if len(token) > 16:
            raise ValueError(f"Invalid cell token: {token!r}")
        try:
            value = int(token.ljust(16, '0'), 16)
        except ValueError:
            raise ValueError(f"Invalid cell token: {token!r}")
        return cls(value)

    @classmethod
    def root(cls) -> 'CellId':
        """The level-0 cell covering the whole domain."""
        return cls(lsb_for_level(0))

    # === Identity ===

    def is_valid(self) -> bool:
        if not 0 < self.id < _ID_LIMIT:
            return False
        lsb = self.id & -self.id
        return (lsb.bit_length() - 1) % 2 == 0

    def lsb(self) -> int:
        return self.id & -self.id

    def level(self) -> int:
        return MAX_LEVEL - (self.lsb().bit_length() - 1) // 2

    def is_leaf(self) -> bool:
        return self.id & 1 == 1

    def to_token(self) -> str:
        """Compact hex form with trailing zeros stripped."""
        if self.id == 0:
            return 'X'
        return format(self.id, '016x').rstrip('0')

    def ij(self) -> Tuple[int, int]:
        """Column and row of this cell at its own level."""
        morton = self.id >> (2 * (MAX_LEVEL - self.level()) + 1)
        return _compact(morton), _compact(morton >> 1)

    # === Hierarchy ===

    def parent(self, level: Optional[int] = None) -> 'CellId':
        own_level = self.level()
        if level is None:
            level = own_level - 1
        if not 0 <= level <= own_level:
            raise ValueError(f"Cannot take level {level} parent of level {own_level} cell")
        new_lsb = lsb_for_level(level)
        return CellId((self.id & -new_lsb) | new_lsb)

    def child(self, k: int) -> 'CellId':
        if self.is_leaf():
            raise ValueError("Leaf cells have no children")
        if not 0 <= k < NUM_CHILDREN:
            raise ValueError(f"Child position must be in [0, {NUM_CHILDREN}), got {k}")
        new_lsb = self.lsb() >> 2
        return CellId(self.id - self.lsb() + new_lsb + k * (new_lsb << 1))

    def children(self) -> List['CellId']:
        """The four children in Z-order (SW, SE, NW, NE)."""
        return [self.child(k) for k in range(NUM_CHILDREN)]

    def range_min(self) -> int:
        """Smallest leaf id contained in this cell."""
        return self.id - (self.lsb() - 1)

    def range_max(self) -> int:
        """Largest leaf id contained in this cell."""
        return self.id + (self.lsb() - 1)

    def contains(self, other: 'CellId') -> bool:
        return self.range_min() <= other.id <= self.range_max()

    def intersects(self, other: 'CellId') -> bool:
        return (other.range_min() <= self.range_max()
                and other.range_max() >= self.range_min())

    def next(self) -> 'CellId':
        """Next cell at the same level in Z-order (may be invalid past the end)."""
        return CellId(self.id + (self.lsb() << 1))

    def prev(self) -> 'CellId':
        return CellId(self.id - (self.lsb() << 1))

    # === Neighbours ===

    def _neighbor_at(self, di: int, dj: int) -> Optional['CellId']:
        level = self.level()
        size = 1 << level
        i, j = self.ij()
        nj = j + dj
        if not 0 <= nj < size:
            return None
        ni = (i + di) % size
        neighbor = CellId.from_ij(ni, nj, level)
        return None if neighbor == self else neighbor

    def edge_neighbors(self) -> List['CellId']:
        """Edge-sharing neighbours; longitude wraps, latitude stops at the poles."""
        result: List[CellId] = []
        for di, dj in ((0, -1), (1, 0), (0, 1), (-1, 0)):
            neighbor = self._neighbor_at(di, dj)
            if neighbor is not None and neighbor not in result:
                result.append(neighbor)
        return result

    def all_neighbors(self) -> List['CellId']:
        """8-connected neighbours at the same level."""
        result: List[CellId] = []
        for dj in (-1, 0, 1):
            for di in (-1, 0, 1):
                if di == 0 and dj == 0:
                    continue
                neighbor = self._neighbor_at(di, dj)
                if neighbor is not None and neighbor not in result:
                    result.append(neighbor)
        return result

    # === Geometry ===

    def bounds(self) -> Tuple[float, float, float, float]:
        """(min_lng, min_lat, max_lng, max_lat) of the cell."""
        level = self.level()
        i, j = self.ij()
        width = (MAX_LNG - MIN_LNG) / (1 << level)
        height = (MAX_LAT - MIN_LAT) / (1 << level)
        return (
            MIN_LNG + i * width,
            MIN_LAT + j * height,
            MIN_LNG + (i + 1) * width,
            MIN_LAT + (j + 1) * height,
        )

    def polygon(self) -> Polygon:
        return box(*self.bounds())

    def center(self) -> Point:
        minx, miny, maxx, maxy = self.bounds()
        return Point((minx + maxx) / 2, (miny + maxy) / 2)

    def __repr__(self) -> str:
        if not self.is_valid():
            return f"CellId(invalid: {self.id})"
        return f"CellId({self.to_token()}, level={self.level()})"


def cells_at_level(level: int) -> Iterator[CellId]:
    """Every cell at ``level`` in Z-order."""
    level = validate_level(level)
    lsb = lsb_for_level(level)
    step = lsb << 1
    for n in range(1 << (2 * level)):
        yield CellId(lsb + n * step)


def cover_range(lo: int, hi: int) -> List[CellId]:
    """Minimal list of cells exactly covering the leaf interval ``[lo, hi]``."""
    root = CellId.root()
    if lo > hi or lo < root.range_min() or hi > root.range_max():
        raise ValueError(f"Leaf range [{lo}, {hi}] outside domain")
    if lo % 2 == 0 or hi % 2 == 0:
        raise ValueError("Leaf range bounds must be leaf ids")

    cells: List[CellId] = []
    current = lo
    while current <= hi:
        cell = CellId(current)
        while cell.level() > 0:
            parent = cell.parent()
            if parent.range_min() != current or parent.range_max() > hi:
                break
            cell = parent
        cells.append(cell)
        current = cell.range_max() + 2
    return cells


# === Vectorised partitioning ===

def _spread_array(v: np.ndarray) -> np.ndarray:
    v = v & np.int64(_LEAF_DIM - 1)
    for shift, mask in _SPREAD_MASKS:
        v = (v | (v << shift)) & np.int64(mask)
    return v


def leaf_ids(lats, lngs) -> np.ndarray:
    """
    Leaf cell ids for arrays of coordinates.

    Matches :meth:`CellId.from_lat_lng` exactly; callers validate the
    domain first (see :func:`validate_coordinate_arrays`).
    """
    lats = np.asarray(lats, dtype=np.float64)
    lngs = np.asarray(lngs, dtype=np.float64)

    i = np.floor((lngs - MIN_LNG) / (MAX_LNG - MIN_LNG) * _LEAF_DIM).astype(np.int64)
    j = np.floor((lats - MIN_LAT) / (MAX_LAT - MIN_LAT) * _LEAF_DIM).astype(np.int64)
    np.clip(i, 0, _LEAF_DIM - 1, out=i)
    np.clip(j, 0, _LEAF_DIM - 1, out=j)

    morton = _spread_array(i) | (_spread_array(j) << 1)
    return (morton << 1) | 1


def validate_coordinate_arrays(lats: np.ndarray, lngs: np.ndarray) -> None:
    """Raise OutOfDomainError for the first coordinate outside the domain."""
    # NaN fails every comparison, so it lands in `bad` too
    bad = ~((lats >= MIN_LAT) & (lats <= MAX_LAT) & (lngs >= MIN_LNG) & (lngs <= MAX_LNG))
    if bad.any():
        idx = int(np.flatnonzero(bad)[0])
        validate_coordinate(float(lats[idx]), float(lngs[idx]))
