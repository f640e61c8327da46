"""Abstractions layer - interfaces and shared types."""

from .types import GridCell
from .interfaces import HeatScorer

__all__ = ['HeatScorer', 'GridCell']
