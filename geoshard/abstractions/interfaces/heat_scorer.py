# geoshard/abstractions/interfaces/heat_scorer.py
"""Heat scorer interface - NO IMPLEMENTATIONS!"""

from abc import ABC, abstractmethod
from typing import Any

from ...grid_systems.cell_id import CellId, MAX_LEVEL


class HeatScorer(ABC):
    """Computes the heat of a tiling cell from the entities inside it.

    Implementations must be pure: the same cell and entity index always
    give the same non-negative score, and a cell with no entities scores 0.
    """

    @abstractmethod
    def score(self, cell: CellId, entities: Any) -> float:
        """Heat of ``cell`` given an ``EntityIndex``."""
        pass

    @property
    def finest_level(self) -> int:
        """Finest level at which the score is still meaningful."""
        return MAX_LEVEL

    @property
    def name(self) -> str:
        return type(self).__name__
