# geoshard/sharding/searcher.py
"""Coordinate to shard lookups over a GeoshardTable."""

from bisect import bisect_right
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pyproj

from ..config import config
from ..foundations.types import OutOfDomainError
from ..grid_systems.cell_id import CellId, MIN_LAT, MAX_LAT, MIN_LNG, MAX_LNG, validate_coordinate
from ..grid_systems.bounds_manager import BoundsManager
from ..grid_systems.quadtree_grid import QuadTreeGrid
from ..infrastructure.logging import get_logger
from .entities import coerce_entity
from .table import GeoshardTable, Shard

logger = get_logger(__name__)

# Box queries walk at most this many cells before coarsening
MAX_QUERY_CELLS = 4096

Box = Tuple[float, float, float, float]


class GeoshardSearcher:
    """
    Resolves coordinates to shards with a binary search over shard starts.

    Owns one table and never changes, so one searcher can serve any number
    of concurrent readers.
    """

    def __init__(self, table: GeoshardTable):
        self._table = table
        self._shards = table.shards
        self._starts: List[int] = [shard.range_min() for shard in self._shards]
        self._by_name: Dict[str, Shard] = {shard.name: shard for shard in self._shards}
        self._geod = pyproj.Geod(ellps=config.get('search.ellipsoid', 'WGS84'))

    @classmethod
    def from_table(cls, table: GeoshardTable) -> 'GeoshardSearcher':
        return cls(table)

    @property
    def table(self) -> GeoshardTable:
        return self._table

    def __len__(self) -> int:
        return len(self._shards)

    # === Point lookups ===

    def _shard_index(self, leaf_id: int) -> int:
        return bisect_right(self._starts, leaf_id) - 1

    def get_shard_for(self, lat: float, lng: float) -> Shard:
        """
        Shard owning a coordinate.

        Raises:
            OutOfDomainError: For NaN or coordinates outside the domain
        """
        leaf = CellId.from_lat_lng(lat, lng)
        return self._shards[self._shard_index(leaf.id)]

    def get_shard_for_cell(self, cell: CellId) -> Shard:
        """Shard holding the first leaf of ``cell``."""
        if not cell.is_valid():
            raise OutOfDomainError(f"Invalid cell id: {cell.id}")
        return self._shards[self._shard_index(cell.range_min())]

    def get_shard_for_entity(self, entity: Any) -> Shard:
        lat, lng, _ = coerce_entity(entity)
        return self.get_shard_for(lat, lng)

    def get_cell_id_from_location(self, lat: float, lng: float) -> CellId:
        """Cell at the table's storage level containing the coordinate."""
        return CellId.from_lat_lng(lat, lng, self._table.storage_level)

    def shard_by_name(self, name: str) -> Optional[Shard]:
        return self._by_name.get(name)

    # === Area lookups ===

    def _shards_in_box(self, bounds: Box, found: Dict[str, Shard]):
        minx, miny, maxx, maxy = bounds
        level = self._table.storage_level
        grid = QuadTreeGrid(level=level)
        while level > 0 and grid.count_cells_in_bounds(bounds) > MAX_QUERY_CELLS:
            level -= 1
            grid = QuadTreeGrid(level=level)

        for cell in grid.cell_ids_in_bounds(bounds):
            first = self._shard_index(cell.range_min())
            last = self._shard_index(cell.range_max())
            for shard in self._shards[first:last + 1]:
                if shard.name in found:
                    continue
                # Edge cells of the walk may only partly overlap the box
                if any(_touches(c.bounds(), bounds) for c in shard.covering()
                       if c.intersects(cell)):
                    found[shard.name] = shard

    def _ordered(self, found: Dict[str, Shard]) -> List[Shard]:
        return sorted(found.values(), key=lambda shard: shard.range_min())

    def get_shards_in_bounds(self,
                             min_lng: float,
                             min_lat: float,
                             max_lng: float,
                             max_lat: float) -> List[Shard]:
        """Shards whose footprint touches the box, in Z-order."""
        validate_coordinate(min_lat, min_lng)
        validate_coordinate(max_lat, max_lng)
        if min_lng > max_lng or min_lat > max_lat:
            raise OutOfDomainError(
                f"Bounds are inverted: ({min_lng}, {min_lat}, {max_lng}, {max_lat})"
            )
        found: Dict[str, Shard] = {}
        self._shards_in_box((float(min_lng), float(min_lat), float(max_lng), float(max_lat)), found)
        return self._ordered(found)

    def get_shards_in_region(self, region: str) -> List[Shard]:
        """Shards touching a named region or a 'min_lng,min_lat,max_lng,max_lat' string."""
        return self.get_shards_in_bounds(*BoundsManager().get_bounds(region).bounds)

    def radius_bounds(self, lat: float, lng: float, radius_km: float) -> List[Box]:
        """
        Boxes bounding a geodesic circle.

        The circle is sampled on ``search.radius_samples`` azimuths. A circle
        reaching a pole spans every longitude; one crossing the antimeridian
        is split into two boxes.
        """
        lat, lng = validate_coordinate(lat, lng)
        if not np.isfinite(radius_km) or radius_km < 0:
            raise ValueError(f"radius_km must be finite and >= 0, got {radius_km!r}")
        radius_m = float(radius_km) * 1000.0

        samples = int(config.get('search.radius_samples', 72))
        azimuths = np.linspace(0.0, 360.0, samples, endpoint=False)
        lons, lats, _ = self._geod.fwd(
            np.full(samples, lng), np.full(samples, lat), azimuths, np.full(samples, radius_m)
        )
        lats = np.asarray(lats)
        lons = np.asarray(lons)

        min_lat = max(float(lats.min()), MIN_LAT)
        max_lat = min(float(lats.max()), MAX_LAT)
        min_lat, max_lat = min(min_lat, lat), max(max_lat, lat)

        covers_pole = False
        for pole in (MAX_LAT, MIN_LAT):
            _, _, distance = self._geod.inv(lng, lat, lng, pole)
            if distance <= radius_m:
                covers_pole = True
                if pole == MAX_LAT:
                    max_lat = MAX_LAT
                else:
                    min_lat = MIN_LAT

        if covers_pole:
            return [(MIN_LNG, min_lat, MAX_LNG, max_lat)]

        # Longitudes relative to the centre, unwrapped to (-180, 180]
        offsets = (lons - lng + 540.0) % 360.0 - 180.0
        west = lng + min(float(offsets.min()), 0.0)
        east = lng + max(float(offsets.max()), 0.0)
        if east - west >= MAX_LNG - MIN_LNG:
            return [(MIN_LNG, min_lat, MAX_LNG, max_lat)]
        if west < MIN_LNG:
            return [(west + 360.0, min_lat, MAX_LNG, max_lat), (MIN_LNG, min_lat, east, max_lat)]
        if east > MAX_LNG:
            return [(west, min_lat, MAX_LNG, max_lat), (MIN_LNG, min_lat, east - 360.0, max_lat)]
        return [(west, min_lat, east, max_lat)]

    def get_shards_for_radius(self, lat: float, lng: float, radius_km: Optional[float] = None) -> List[Shard]:
        """Shards touching the bounding box of a geodesic circle, in Z-order."""
        if radius_km is None:
            radius_km = config.get('search.default_radius_km', 50.0)
        boxes = self.radius_bounds(lat, lng, radius_km)
        found: Dict[str, Shard] = {}
        for bounds in boxes:
            self._shards_in_box(bounds, found)
        logger.debug(f"Radius {radius_km}km around ({lat}, {lng}) touches {len(found)} shards")
        return self._ordered(found)


def _touches(a: Box, b: Box) -> bool:
    """Closed-box intersection test."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]
