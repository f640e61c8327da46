"""
Base classes for geoshard grid systems.

- BaseGrid: spatial grid generation and cell lookup
"""

from .grid import BaseGrid
from ..abstractions.types import GridCell

__all__ = ['BaseGrid', 'GridCell']
