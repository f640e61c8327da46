"""Named boxes over the tiling domain, used for region and box queries."""

from typing import Tuple, Dict, List, Optional, Any
from dataclasses import dataclass
from shapely.geometry import Polygon, box
import pyproj
import logging

from ..config import config
from .cell_id import DOMAIN_BOUNDS, validate_coordinate

logger = logging.getLogger(__name__)

Bounds = Tuple[float, float, float, float]


@dataclass
class BoundsDefinition:
    """A named lon/lat box inside the domain."""
    name: str
    bounds: Bounds  # min_lng, min_lat, max_lng, max_lat
    category: str = "custom"  # global, metro, country, custom
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if len(self.bounds) != 4:
            raise ValueError(f"Bounds '{self.name}' need 4 values, got {self.bounds!r}")
        min_lng, min_lat, max_lng, max_lat = self.bounds
        validate_coordinate(min_lat, min_lng)
        validate_coordinate(max_lat, max_lng)
        if min_lng > max_lng or min_lat > max_lat:
            raise ValueError(f"Bounds '{self.name}' are inverted: {self.bounds}")
        self.bounds = (float(min_lng), float(min_lat), float(max_lng), float(max_lat))

    @property
    def polygon(self) -> Polygon:
        return box(*self.bounds)

    @property
    def area_km2(self) -> float:
        """Geodesic area of the box on the configured ellipsoid."""
        geod = pyproj.Geod(ellps=config.get('search.ellipsoid', 'WGS84'))
        area, _ = geod.geometry_area_perimeter(self.polygon)
        return abs(area) / 1_000_000

    def contains(self, lng: float, lat: float) -> bool:
        """Closed containment test."""
        min_lng, min_lat, max_lng, max_lat = self.bounds
        return min_lng <= lng <= max_lng and min_lat <= lat <= max_lat

    def intersects(self, other: Bounds) -> bool:
        """True if the boxes share at least one point."""
        min_lng, min_lat, max_lng, max_lat = self.bounds
        return (other[0] <= max_lng and min_lng <= other[2]
                and other[1] <= max_lat and min_lat <= other[3])


def _region(name: str, bounds: Bounds, category: str) -> BoundsDefinition:
    return BoundsDefinition(name, bounds, category=category)


class BoundsManager:
    """Lookup of named regions plus 'min_lng,min_lat,max_lng,max_lat' strings."""

    # Dense metros are where shards end up smallest.
    REGIONS = {
        'global': _region('global', DOMAIN_BOUNDS, 'global'),

        'new_york': _region('new_york', (-74.26, 40.49, -73.70, 40.92), 'metro'),
        'london': _region('london', (-0.51, 51.28, 0.33, 51.69), 'metro'),
        'tokyo': _region('tokyo', (139.56, 35.52, 139.92, 35.82), 'metro'),
        'sao_paulo': _region('sao_paulo', (-46.83, -23.78, -46.36, -23.36), 'metro'),
        'lagos': _region('lagos', (3.10, 6.39, 3.70, 6.70), 'metro'),
        'mumbai': _region('mumbai', (72.77, 18.89, 72.99, 19.27), 'metro'),

        'usa': _region('usa', (-125, 24, -66, 49), 'country'),
        'brazil': _region('brazil', (-74, -34, -34, 5), 'country'),
        'australia': _region('australia', (113, -44, 154, -10), 'country'),
    }

    def __init__(self):
        self.custom_regions: Dict[str, BoundsDefinition] = {}
        self._load_custom_regions()

    def _load_custom_regions(self):
        """Read ``bounds.custom`` entries: a 4-list or {bounds, category, metadata}."""
        for name, entry in (config.get('bounds.custom', {}) or {}).items():
            if isinstance(entry, dict) and 'bounds' in entry:
                self.custom_regions[name] = BoundsDefinition(
                    name,
                    tuple(entry['bounds']),
                    category=entry.get('category', 'custom'),
                    metadata=entry.get('metadata'),
                )
            elif isinstance(entry, (list, tuple)):
                self.custom_regions[name] = BoundsDefinition(name, tuple(entry))
            else:
                logger.warning(f"Ignoring malformed custom bounds '{name}': {entry!r}")

    def get_bounds(self, name: str) -> BoundsDefinition:
        """
        Resolve a region.

        Args:
            name: Region name or 'min_lng,min_lat,max_lng,max_lat'

        Raises:
            ValueError: If the name is unknown and does not parse as a box
        """
        region = self.REGIONS.get(name) or self.custom_regions.get(name)
        if region is not None:
            return region

        parts = name.split(',')
        if len(parts) == 4:
            try:
                values = tuple(float(part) for part in parts)
            except ValueError:
                values = None
            if values is not None:
                return BoundsDefinition('custom_bounds', values)

        raise ValueError(f"Unknown bounds: {name}. Available: {self.list_available()}")

    def list_available(self) -> Dict[str, List[str]]:
        """Region names grouped by category."""
        available: Dict[str, List[str]] = {}
        for region in list(self.REGIONS.values()) + list(self.custom_regions.values()):
            available.setdefault(region.category, []).append(region.name)
        return available
