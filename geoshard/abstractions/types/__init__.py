# geoshard/abstractions/types/__init__.py
"""Type definitions for the abstractions layer."""

from .grid_types import GridCell

__all__ = ['GridCell']
