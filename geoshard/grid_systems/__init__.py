# geoshard/grid_systems/__init__.py
"""Grid system implementations."""

from .bounds_manager import BoundsManager, BoundsDefinition
from .cell_id import (
    CellId,
    MAX_LEVEL,
    DOMAIN_BOUNDS,
    cells_at_level,
    cover_range,
    leaf_ids,
    validate_coordinate,
    validate_level
)
from .quadtree_grid import QuadTreeGrid

__all__ = [
    'BoundsManager',
    'BoundsDefinition',
    'CellId',
    'MAX_LEVEL',
    'DOMAIN_BOUNDS',
    'cells_at_level',
    'cover_range',
    'leaf_ids',
    'validate_coordinate',
    'validate_level',
    'QuadTreeGrid'
]
