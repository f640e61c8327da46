"""Shard building and lookup."""

from .entities import Entity, EntityIndex, coerce_entity
from .scorers import UserCountScorer, WeightedScorer, PrecomputedScorer, SCORERS, get_scorer
from .table import Shard, GeoshardTable
from .builder import GeoshardBuilder, GeoshardBuilderOptions
from .searcher import GeoshardSearcher

__all__ = [
    'Entity',
    'EntityIndex',
    'coerce_entity',
    'UserCountScorer',
    'WeightedScorer',
    'PrecomputedScorer',
    'SCORERS',
    'get_scorer',
    'Shard',
    'GeoshardTable',
    'GeoshardBuilder',
    'GeoshardBuilderOptions',
    'GeoshardSearcher'
]
