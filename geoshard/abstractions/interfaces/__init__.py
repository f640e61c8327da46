"""Pure interfaces."""

from .heat_scorer import HeatScorer

__all__ = ['HeatScorer']
