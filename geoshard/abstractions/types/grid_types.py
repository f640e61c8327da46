# geoshard/abstractions/types/grid_types.py
"""Cells of a materialised grid."""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
from shapely.geometry import Polygon, Point


@dataclass
class GridCell:
    """One tiling cell with its polygon, centroid and geodesic area."""
    cell_id: str
    geometry: Polygon
    centroid: Point
    area_km2: float
    bounds: Tuple[float, float, float, float]  # min_lng, min_lat, max_lng, max_lat
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Flat record with WKT geometries."""
        return dict(
            cell_id=self.cell_id,
            geometry_wkt=self.geometry.wkt,
            centroid_wkt=self.centroid.wkt,
            area_km2=self.area_km2,
            bounds=list(self.bounds),
            metadata=dict(self.metadata),
        )
