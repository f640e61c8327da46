"""Shared machinery for grids that materialise tiling cells as polygons."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional, Tuple
from shapely.geometry import Polygon
import pyproj
import logging

from ..abstractions.types import GridCell
from ..config import config

logger = logging.getLogger(__name__)


class BaseGrid(ABC):
    """
    A lon/lat grid restricted to a bounding box.

    Subclasses decide how cells are enumerated and identified; this class
    owns the bounds, per-grid settings from ``grids.<name>``, geodesic
    areas and the lazily generated cell list.
    """

    grid_name: str = ''

    def __init__(self, bounds: Optional[Tuple[float, float, float, float]] = None, **options):
        if bounds is None:
            bounds = config.get('grids.default_bounds', [-180, -90, 180, 90])
        self.bounds = tuple(bounds)
        self.config: Dict[str, Any] = {**config.get(f'grids.{self.grid_name}', {}), **options}
        self.geod = pyproj.Geod(ellps=config.get('search.ellipsoid', 'WGS84'))
        self._cells: Optional[List[GridCell]] = None

    @abstractmethod
    def generate_grid(self) -> List[GridCell]:
        """Build every cell inside the bounds."""

    @abstractmethod
    def get_cell_id(self, x: float, y: float) -> str:
        """Id of the cell holding longitude ``x``, latitude ``y``."""

    @abstractmethod
    def get_cell_by_id(self, cell_id: str) -> Optional[GridCell]:
        """The cell for ``cell_id``, or None if it is not part of this grid."""

    def get_cells(self) -> List[GridCell]:
        if self._cells is None:
            self._cells = self.generate_grid()
        return self._cells

    def get_cell_count(self) -> int:
        return len(self.get_cells())

    def calculate_area_km2(self, polygon: Polygon) -> float:
        """Geodesic area of a lon/lat polygon in km²."""
        area, _ = self.geod.geometry_area_perimeter(polygon)
        return abs(area) / 1_000_000

    def calculate_statistics(self) -> Dict[str, Any]:
        """Cell count and area spread of the generated grid."""
        areas = [cell.area_km2 for cell in self.get_cells()]
        if not areas:
            return {'cell_count': 0, 'total_area_km2': 0.0, 'bounds': self.bounds}

        total = sum(areas)
        return {
            'cell_count': len(areas),
            'total_area_km2': total,
            'avg_cell_area_km2': total / len(areas),
            'min_cell_area_km2': min(areas),
            'max_cell_area_km2': max(areas),
            'bounds': self.bounds,
        }
