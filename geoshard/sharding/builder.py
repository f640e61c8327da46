# geoshard/sharding/builder.py
"""
Build a GeoshardTable from located entities.

The tiling is scored at the storage level, hot cells are split until they
fit under ``max_heat``, and the resulting regions are walked in Z-order so
that runs of cold neighbours merge into shards of at least ``min_heat``.
Two kinds of shard may fall outside ``[min_heat, max_heat]``: a region that
is still too hot at the finest permitted level, and a cold run that has no
neighbour able to absorb it.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple, Union
import math
import numbers
import time

from ..abstractions.interfaces import HeatScorer
from ..config import config
from ..foundations.types import InvalidConfiguration
from ..grid_systems.cell_id import CellId, MAX_LEVEL, cells_at_level, validate_level
from ..infrastructure.logging import LoggingContext, get_logger
from .entities import EntityIndex
from .scorers import UserCountScorer, get_scorer
from .table import GeoshardTable, Shard

logger = get_logger(__name__)


@dataclass
class GeoshardBuilderOptions:
    """Parameters of a shard build."""
    storage_level: int
    min_heat: float
    max_heat: float
    scorer: Union[HeatScorer, str] = field(default_factory=UserCountScorer)
    max_level: int = MAX_LEVEL
    fold_stranded_runs: bool = True
    name_prefix: str = "geoshard_user_index_"

    @classmethod
    def from_config(cls, **overrides) -> 'GeoshardBuilderOptions':
        """Options from the ``sharding`` config section, with overrides."""
        settings = dict(config.sharding)
        settings.update(overrides)
        return cls(
            storage_level=settings['storage_level'],
            min_heat=settings['min_heat'],
            max_heat=settings['max_heat'],
            scorer=settings.get('scorer', 'user_count'),
            max_level=settings.get('max_level', MAX_LEVEL),
            fold_stranded_runs=settings.get('fold_stranded_runs', True),
            name_prefix=settings.get('name_prefix', "geoshard_user_index_"),
        )

    def resolve_scorer(self) -> HeatScorer:
        if isinstance(self.scorer, str):
            return get_scorer(self.scorer)
        if not isinstance(self.scorer, HeatScorer):
            raise InvalidConfiguration(
                f"scorer must be a HeatScorer or a registered name, got {type(self.scorer).__name__}"
            )
        return self.scorer

    def validate(self) -> 'GeoshardBuilderOptions':
        """
        Check the options.

        Raises:
            EmptyGeometryError: If a level is outside the tiling
            InvalidConfiguration: For thresholds or levels that can't build
        """
        validate_level(self.storage_level)
        validate_level(self.max_level)
        for label, value in (('min_heat', self.min_heat), ('max_heat', self.max_heat)):
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise InvalidConfiguration(f"{label} must be a number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise InvalidConfiguration(f"{label} must be finite and > 0, got {value!r}")
        if self.min_heat >= self.max_heat:
            raise InvalidConfiguration(
                f"min_heat ({self.min_heat}) must be below max_heat ({self.max_heat})"
            )
        if self.max_level < self.storage_level:
            raise InvalidConfiguration(
                f"max_level ({self.max_level}) is coarser than storage_level ({self.storage_level})"
            )
        if not isinstance(self.name_prefix, str):
            raise InvalidConfiguration(f"name_prefix must be a string, got {self.name_prefix!r}")
        self.resolve_scorer()
        return self


@dataclass
class _Group:
    """Consecutive regions that will become one shard."""
    first: CellId
    last: CellId
    cell_count: int
    heat: float

    @classmethod
    def of(cls, cell: CellId, heat: float) -> '_Group':
        return cls(cell, cell, 1, heat)

    def extend(self, other: '_Group') -> '_Group':
        return _Group(self.first, other.last, self.cell_count + other.cell_count, self.heat + other.heat)


class GeoshardBuilder:
    """
    One-shot builder turning an entity source into a GeoshardTable.

    The entity source is read exactly once, so a builder can only build once.
    """

    def __init__(self, entities: Optional[Iterable[Any]], options: GeoshardBuilderOptions):
        self._entities = entities
        self.options = options
        self._consumed = False

    @classmethod
    def user_count_scorer(cls,
                          storage_level: int,
                          entities: Optional[Iterable[Any]],
                          min_heat: float,
                          max_heat: float) -> 'GeoshardBuilder':
        """Builder scoring cells by how many entities they hold."""
        options = GeoshardBuilderOptions(
            storage_level=storage_level,
            min_heat=min_heat,
            max_heat=max_heat,
            scorer=UserCountScorer(),
        )
        return cls(entities, options)

    def build(self) -> GeoshardTable:
        """
        Build the table.

        Returns:
            GeoshardTable partitioning the whole domain

        Raises:
            InvalidConfiguration: Bad options, or the builder was already used
            OutOfDomainError: An entity lies outside the domain
            InvalidEntityError: An entity record or weight is malformed
        """
        if self._consumed:
            raise InvalidConfiguration("GeoshardBuilder.build() can only run once; the entity source is consumed")
        options = self.options.validate()
        scorer = options.resolve_scorer()
        self._consumed = True

        ctx = LoggingContext()
        start_time = time.time()
        with ctx.build('geoshard_table', storage_level=options.storage_level,
                       min_heat=options.min_heat, max_heat=options.max_heat, scorer=scorer.name):
            with ctx.stage('index_entities'):
                index = EntityIndex.from_entities(self._entities)
                self._entities = None

            with ctx.stage('score_regions'):
                regions = self._score_regions(index, scorer)

            with ctx.stage('merge_regions'):
                groups = self._merge_regions(regions)

            if options.fold_stranded_runs:
                with ctx.stage('fold_stranded_runs'):
                    groups = self._fold_stranded_runs(groups)

            table = GeoshardTable(
                self._to_shards(groups),
                storage_level=options.storage_level,
                min_heat=options.min_heat,
                max_heat=options.max_heat,
            )

            stats = table.statistics()
            logger.log_performance(
                'build_geoshard_table',
                time.time() - start_time,
                items_processed=len(index),
                region_count=len(regions),
                **stats
            )
            if stats['out_of_range']:
                logger.info(f"{stats['out_of_range']} shard(s) outside "
                            f"[{options.min_heat}, {options.max_heat}]")

        return table

    # === Scoring ===

    def _score(self, scorer: HeatScorer, cell: CellId, entities: EntityIndex) -> float:
        heat = scorer.score(cell, entities)
        try:
            heat = float(heat)
        except (TypeError, ValueError) as e:
            raise InvalidConfiguration(f"{scorer.name} returned a non-numeric heat {heat!r}") from e
        if not math.isfinite(heat) or heat < 0:
            raise InvalidConfiguration(
                f"{scorer.name} returned heat {heat!r} for {cell}; heat must be finite and >= 0"
            )
        return heat

    def _score_regions(self, index: EntityIndex, scorer: HeatScorer) -> List[Tuple[CellId, float]]:
        """Score the base cells, splitting hot ones, in Z-order."""
        finest = min(self.options.max_level, scorer.finest_level)
        regions: List[Tuple[CellId, float]] = []
        for base in cells_at_level(self.options.storage_level):
            self._split(base, index.within(base), scorer, finest, regions)
        logger.debug(f"Scored {len(regions)} regions (finest split level {finest})")
        return regions

    def _split(self,
               cell: CellId,
               entities: EntityIndex,
               scorer: HeatScorer,
               finest: int,
               regions: List[Tuple[CellId, float]]):
        heat = self._score(scorer, cell, entities)
        if heat > self.options.max_heat:
            if cell.level() < finest:
                for child in cell.children():
                    self._split(child, entities.within(child), scorer, finest, regions)
                return
            logger.warning(
                f"Cell {cell.to_token()} still has heat {heat:g} > {self.options.max_heat} "
                f"at level {cell.level()}; keeping it as one shard"
            )
        regions.append((cell, heat))

    # === Merging ===

    def _merge_regions(self, regions: List[Tuple[CellId, float]]) -> List[_Group]:
        """Collapse consecutive cold regions into runs."""
        min_heat, max_heat = self.options.min_heat, self.options.max_heat
        groups: List[_Group] = []
        run: Optional[_Group] = None

        for cell, heat in regions:
            region = _Group.of(cell, heat)
            if heat >= min_heat:
                if run is not None:
                    groups.append(run)
                    run = None
                groups.append(region)
                continue

            if run is not None and run.heat + heat > max_heat:
                groups.append(run)
                run = None
            run = region if run is None else run.extend(region)
            if run.heat >= min_heat:
                groups.append(run)
                run = None

        if run is not None:
            groups.append(run)
        return groups

    def _fits(self, target: _Group, extra: _Group) -> bool:
        return target.heat + extra.heat <= self.options.max_heat

    def _fold_stranded_runs(self, groups: List[_Group]) -> List[_Group]:
        """
        Fold runs left below ``min_heat`` into a neighbouring shard.

        A fold must keep the target at or below ``max_heat``, so overflow
        regions absorb nothing.
        """
        min_heat = self.options.min_heat
        result: List[_Group] = []
        carry: Optional[_Group] = None
        folded = 0

        for group in groups:
            if carry is not None:
                if self._fits(group, carry):
                    group = carry.extend(group)
                    folded += 1
                else:
                    result.append(carry)
                carry = None

            if group.heat < min_heat:
                if result and self._fits(result[-1], group):
                    result[-1] = result[-1].extend(group)
                    folded += 1
                    continue
                carry = group
                continue

            result.append(group)

        if carry is not None:
            result.append(carry)

        logger.debug(f"Folded {folded} stranded run(s); {len(result)} shards remain")
        return result

    def _to_shards(self, groups: List[_Group]) -> List[Shard]:
        prefix = self.options.name_prefix
        return [
            Shard(
                name=f"{prefix}{i}",
                storage_level=self.options.storage_level,
                start=group.first.to_token(),
                end=group.last.to_token(),
                cell_count=group.cell_count,
                heat=group.heat,
            )
            for i, group in enumerate(groups)
        ]
