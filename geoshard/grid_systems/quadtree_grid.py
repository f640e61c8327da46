"""Quadtree grid over the longitude/latitude rectangle."""

from typing import Iterator, List, Optional, Tuple, Union
import logging
import math

from ..base import BaseGrid, GridCell
from ..foundations.types import OutOfDomainError
from .bounds_manager import BoundsManager, BoundsDefinition
from .cell_id import (
    CellId, DOMAIN_BOUNDS, MIN_LNG, MIN_LAT, MAX_LNG, MAX_LAT,
    cells_at_level, validate_coordinate, validate_level
)

logger = logging.getLogger(__name__)


def _axis_range(lo: float, hi: float, dom_lo: float, span: float, size: int) -> Tuple[int, int]:
    first = math.floor((lo - dom_lo) / span * size)
    last = math.floor((hi - dom_lo) / span * size)
    return max(first, 0), min(last, size - 1)


class QuadTreeGrid(BaseGrid):
    """
    Quadtree grid system at a single level of the tiling.

    Cell ids are CellId tokens. Level ``L`` splits the domain into
    ``2^L x 2^L`` cells ordered along the Z-order curve.
    """

    grid_name = 'quadtree'

    def __init__(self,
                 level: Optional[int] = None,
                 bounds: Optional[Union[str, Tuple[float, float, float, float], BoundsDefinition]] = None,
                 **kwargs):
        """
        Initialize quadtree grid.

        Args:
            level: Tiling level (0-30); defaults to grids.quadtree.level
            bounds: Region name, 4-tuple or BoundsDefinition; global when omitted
            **kwargs: Additional parameters

        Raises:
            EmptyGeometryError: If the tiling cannot represent ``level``
        """
        if bounds is None:
            self.bounds_def = BoundsManager.REGIONS['global']
        elif isinstance(bounds, BoundsDefinition):
            self.bounds_def = bounds
        elif isinstance(bounds, str):
            self.bounds_def = BoundsManager().get_bounds(bounds)
        else:
            self.bounds_def = BoundsDefinition('custom', tuple(bounds))

        super().__init__(bounds=self.bounds_def.bounds, **kwargs)

        if level is None:
            level = self.config.get('level', 8)
        self.level = validate_level(level)

    @property
    def is_global(self) -> bool:
        return self.bounds == DOMAIN_BOUNDS

    def _index_ranges(self, bounds: Tuple[float, float, float, float]) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        minx, miny, maxx, maxy = bounds
        size = 1 << self.level
        return (
            _axis_range(minx, maxx, MIN_LNG, MAX_LNG - MIN_LNG, size),
            _axis_range(miny, maxy, MIN_LAT, MAX_LAT - MIN_LAT, size),
        )

    def _in_bounds(self, cell: CellId) -> bool:
        (i_lo, i_hi), (j_lo, j_hi) = self._index_ranges(self.bounds)
        i, j = cell.ij()
        return i_lo <= i <= i_hi and j_lo <= j <= j_hi

    def cell_ids_in_bounds(self, bounds: Tuple[float, float, float, float]) -> List[CellId]:
        """CellIds at this level owning some point of the closed box, in Z-order."""
        minx, miny, maxx, maxy = bounds
        validate_coordinate(miny, minx)
        validate_coordinate(maxy, maxx)
        if minx > maxx or miny > maxy:
            raise OutOfDomainError(f"Bounds are inverted: {bounds}")

        (i_lo, i_hi), (j_lo, j_hi) = self._index_ranges(bounds)
        cells = [
            CellId.from_ij(i, j, self.level)
            for j in range(j_lo, j_hi + 1)
            for i in range(i_lo, i_hi + 1)
        ]
        cells.sort()
        return cells

    def iter_cell_ids(self) -> Iterator[CellId]:
        """All CellIds of the grid in Z-order."""
        if self.is_global:
            return cells_at_level(self.level)
        return iter(self.cell_ids_in_bounds(self.bounds))

    def to_grid_cell(self, cell: CellId) -> GridCell:
        """Materialise a CellId as a GridCell with geometry."""
        geometry = cell.polygon()
        return GridCell(
            cell_id=cell.to_token(),
            geometry=geometry,
            centroid=cell.center(),
            area_km2=self.calculate_area_km2(geometry),
            bounds=cell.bounds(),
            metadata={
                'grid_type': 'quadtree',
                'level': cell.level(),
                'grid_index': cell.ij()
            }
        )

    def generate_grid(self) -> List[GridCell]:
        """Generate quadtree grid cells."""
        logger.info(f"Generating quadtree grid at level {self.level} for {self.bounds_def.name}")
        cells = [self.to_grid_cell(cell) for cell in self.iter_cell_ids()]
        logger.info(f"Total quadtree grid cells generated: {len(cells)}")
        return cells

    def count_cells_in_bounds(self, bounds: Tuple[float, float, float, float]) -> int:
        """How many cells :meth:`cell_ids_in_bounds` would return."""
        (i_lo, i_hi), (j_lo, j_hi) = self._index_ranges(bounds)
        return max(i_hi - i_lo + 1, 0) * max(j_hi - j_lo + 1, 0)

    def get_cell_count(self) -> int:
        """Number of cells without generating geometries."""
        if self._cells is not None:
            return len(self._cells)
        return self.count_cells_in_bounds(self.bounds)

    def get_cell(self, x: float, y: float) -> CellId:
        """CellId at this level for a coordinate inside the grid bounds."""
        if not self.bounds_def.contains(x, y):
            raise OutOfDomainError(f"Coordinate ({x}, {y}) outside grid bounds", lat=y, lng=x)
        return CellId.from_lat_lng(y, x, self.level)

    def get_cell_id(self, x: float, y: float) -> str:
        """Get cell ID for a coordinate."""
        return self.get_cell(x, y).to_token()

    def get_cell_by_id(self, cell_id: str) -> Optional[GridCell]:
        """Get cell by ID."""
        try:
            cell = CellId.from_token(cell_id)
        except ValueError:
            return None

        if not cell.is_valid() or cell.level() != self.level:
            return None
        if not self._in_bounds(cell):
            return None

        return self.to_grid_cell(cell)

    def get_neighbor_ids(self, cell_id: str) -> List[str]:
        """Get IDs of neighboring cells (8-connected)."""
        try:
            cell = CellId.from_token(cell_id)
        except ValueError:
            return []
        if not cell.is_valid() or cell.level() != self.level:
            return []

        return [
            neighbor.to_token()
            for neighbor in cell.all_neighbors()
            if self._in_bounds(neighbor)
        ]
