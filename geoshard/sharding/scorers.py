# geoshard/sharding/scorers.py
"""Heat scorers: how much load a tiling cell carries."""

from bisect import bisect_left, bisect_right
from typing import Dict, List, Mapping, Type, Union
import logging
import math

from ..abstractions.interfaces import HeatScorer
from ..foundations.types import InvalidConfiguration
from ..grid_systems.cell_id import CellId
from .entities import EntityIndex

logger = logging.getLogger(__name__)


class UserCountScorer(HeatScorer):
    """Heat is the number of entities inside the cell."""

    def score(self, cell: CellId, entities: EntityIndex) -> float:
        return float(entities.within(cell).count())


class WeightedScorer(HeatScorer):
    """Heat is the sum of entity weights inside the cell."""

    def score(self, cell: CellId, entities: EntityIndex) -> float:
        return entities.within(cell).total_weight()


class PrecomputedScorer(HeatScorer):
    """
    Heat supplied from outside, keyed by cell.

    A cell's heat is the sum of the supplied cells at or below it. A supplied
    cell coarser than the queried cell spreads its heat evenly over its
    descendants, so splitting never loses heat. Supplied cells must not
    overlap; entities passed to :meth:`score` are ignored.
    """

    def __init__(self, scores: Mapping[Union[CellId, str], float]):
        cells: Dict[CellId, float] = {}
        for key, value in scores.items():
            cell = self._to_cell(key)
            try:
                heat = float(value)
            except (TypeError, ValueError) as e:
                raise InvalidConfiguration(f"Heat for cell {key!r} is not a number: {value!r}") from e
            if not math.isfinite(heat) or heat < 0:
                raise InvalidConfiguration(f"Heat for cell {key!r} must be finite and >= 0, got {value!r}")
            if cell in cells:
                raise InvalidConfiguration(f"Cell {cell.to_token()} supplied more than once")
            cells[cell] = heat

        ordered = sorted(cells, key=lambda c: c.range_min())
        for previous, current in zip(ordered, ordered[1:]):
            if previous.intersects(current):
                raise InvalidConfiguration(
                    f"Supplied cells {previous.to_token()} and {current.to_token()} overlap"
                )

        self._cells = cells
        self._ids: List[int] = sorted(c.id for c in cells)
        self._prefix: List[float] = [0.0]
        for cell_id in self._ids:
            self._prefix.append(self._prefix[-1] + cells[CellId(cell_id)])
        self._finest = max((c.level() for c in cells), default=0)

    @staticmethod
    def _to_cell(key: Union[CellId, str]) -> CellId:
        if isinstance(key, CellId):
            cell = key
        elif isinstance(key, str):
            try:
                cell = CellId.from_token(key)
            except ValueError as e:
                raise InvalidConfiguration(str(e)) from e
        else:
            raise InvalidConfiguration(f"Scores must be keyed by CellId or token, got {type(key).__name__}")
        if not cell.is_valid():
            raise InvalidConfiguration(f"Invalid cell in supplied scores: {key!r}")
        return cell

    @property
    def finest_level(self) -> int:
        return self._finest

    def score(self, cell: CellId, entities: EntityIndex = None) -> float:
        lo = bisect_left(self._ids, cell.range_min())
        hi = bisect_right(self._ids, cell.range_max())
        heat = self._prefix[hi] - self._prefix[lo]

        # At most one supplied cell strictly contains this one. Its id sits
        # between two children's ranges, so the range sum above never saw it.
        level = cell.level()
        for ancestor_level in range(level - 1, -1, -1):
            ancestor = cell.parent(ancestor_level)
            if ancestor in self._cells:
                heat += self._cells[ancestor] / (4 ** (level - ancestor_level))
                break

        return heat


SCORERS: Dict[str, Type[HeatScorer]] = {
    'user_count': UserCountScorer,
    'weighted': WeightedScorer,
}


def get_scorer(name: str) -> HeatScorer:
    """Instantiate a registered scorer by name."""
    try:
        return SCORERS[name]()
    except KeyError:
        raise InvalidConfiguration(
            f"Unknown scorer '{name}'. Available: {sorted(SCORERS)}"
        ) from None
