# geoshard/sharding/entities.py
"""Located entities and the leaf-sorted index the scorers read from."""

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Mapping, Optional, Tuple
import logging

import numpy as np

from ..foundations.types import InvalidEntityError
from ..grid_systems.cell_id import CellId, MAX_LEVEL, leaf_ids, validate_coordinate_arrays

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Entity:
    """A located user or event contributing heat."""
    lat: float
    lng: float
    weight: float = 1.0

    def cell(self, level: int = MAX_LEVEL) -> CellId:
        return CellId.from_lat_lng(self.lat, self.lng, level)


def coerce_entity(record: Any) -> Tuple[float, float, float]:
    """Pull (lat, lng, weight) out of the accepted record shapes."""
    if isinstance(record, Mapping):
        fields = (record.get('lat'), record.get('lng'), record.get('weight', 1.0))
    elif hasattr(record, 'lat') and hasattr(record, 'lng'):
        fields = (record.lat, record.lng, getattr(record, 'weight', 1.0))
    elif isinstance(record, (tuple, list)):
        if len(record) == 2:
            fields = (record[0], record[1], 1.0)
        elif len(record) == 3:
            fields = tuple(record)
        else:
            raise InvalidEntityError(
                f"Entity tuples must be (lat, lng) or (lat, lng, weight), got {len(record)} items"
            )
    else:
        raise InvalidEntityError(f"Cannot read a location from {type(record).__name__}")

    try:
        lat, lng, weight = (float(v) for v in fields)
    except (TypeError, ValueError) as e:
        raise InvalidEntityError(f"Malformed entity {record!r}: {e}") from e
    return lat, lng, weight


class EntityIndex:
    """
    Immutable collection of entities sorted by leaf cell id.

    Because every cell covers a contiguous leaf-id interval, the entities
    inside a cell are a contiguous slice of the sorted arrays, so
    :meth:`within` is two binary searches and returns a view.
    """

    def __init__(self,
                 leaves: np.ndarray,
                 lats: np.ndarray,
                 lngs: np.ndarray,
                 weights: np.ndarray,
                 prefix: Optional[np.ndarray] = None,
                 start: int = 0,
                 stop: Optional[int] = None):
        self._leaves = leaves
        self._lats = lats
        self._lngs = lngs
        self._weights = weights
        # prefix[k] = sum of weights[:k]
        if prefix is None:
            prefix = np.concatenate(([0.0], np.cumsum(weights, dtype=np.float64)))
        self._prefix = prefix
        self._start = start
        self._stop = len(leaves) if stop is None else stop

    # === Construction ===

    @classmethod
    def from_arrays(cls, lats, lngs, weights=None) -> 'EntityIndex':
        """Build from coordinate arrays.

        Raises:
            OutOfDomainError: For the first coordinate outside the domain
            InvalidEntityError: For negative or non-finite weights
        """
        lats = np.asarray(lats, dtype=np.float64).ravel()
        lngs = np.asarray(lngs, dtype=np.float64).ravel()
        if lats.shape != lngs.shape:
            raise InvalidEntityError(
                f"Latitude and longitude arrays differ in length: {lats.size} != {lngs.size}"
            )
        if weights is None:
            weights = np.ones_like(lats)
        else:
            weights = np.asarray(weights, dtype=np.float64).ravel()
            if weights.shape != lats.shape:
                raise InvalidEntityError(
                    f"Weight array length {weights.size} does not match {lats.size} entities"
                )

        validate_coordinate_arrays(lats, lngs)
        bad = ~(np.isfinite(weights) & (weights >= 0))
        if bad.any():
            idx = int(np.flatnonzero(bad)[0])
            raise InvalidEntityError(f"Entity {idx} has invalid weight {weights[idx]!r}")

        leaves = leaf_ids(lats, lngs)
        order = np.argsort(leaves, kind='stable')
        return cls(leaves[order], lats[order], lngs[order], weights[order])

    @classmethod
    def from_entities(cls, entities: Optional[Iterable[Any]]) -> 'EntityIndex':
        """Materialise an entity source, consuming it exactly once."""
        if entities is None:
            return cls.empty()
        if isinstance(entities, EntityIndex):
            return entities

        lats, lngs, weights = [], [], []
        for record in entities:
            lat, lng, weight = coerce_entity(record)
            lats.append(lat)
            lngs.append(lng)
            weights.append(weight)

        logger.debug(f"Indexed {len(lats)} entities")
        return cls.from_arrays(lats, lngs, weights)

    @classmethod
    def empty(cls) -> 'EntityIndex':
        return cls.from_arrays([], [])

    # === Queries ===

    def within(self, cell: CellId) -> 'EntityIndex':
        """Entities whose leaf cell lies inside ``cell``."""
        window = self._leaves[self._start:self._stop]
        lo = self._start + int(np.searchsorted(window, cell.range_min(), side='left'))
        hi = self._start + int(np.searchsorted(window, cell.range_max(), side='right'))
        return EntityIndex(self._leaves, self._lats, self._lngs, self._weights,
                           prefix=self._prefix, start=lo, stop=hi)

    def count(self) -> int:
        return self._stop - self._start

    def total_weight(self) -> float:
        return float(self._prefix[self._stop] - self._prefix[self._start])

    @property
    def leaves(self) -> np.ndarray:
        """Sorted leaf ids of this view (read-only)."""
        view = self._leaves[self._start:self._stop]
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[Entity]:
        for k in range(self._start, self._stop):
            yield Entity(float(self._lats[k]), float(self._lngs[k]), float(self._weights[k]))

    def __repr__(self) -> str:
        return f"EntityIndex(count={self.count()}, total_weight={self.total_weight():g})"
