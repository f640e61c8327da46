"""Shared fixtures for geoshard tests."""

import logging

import pytest

from geoshard.grid_systems import CellId
from geoshard.sharding import GeoshardBuilder, GeoshardBuilderOptions, GeoshardSearcher


def quadrant_points(lng0: float, lat0: float, count: int = 50):
    """``count`` points on a 3-degree lattice starting at (lng0, lat0)."""
    return [(lat0 + (k // 10) * 3, lng0 + (k % 10) * 3) for k in range(count)]


@pytest.fixture
def root():
    return CellId.root()


@pytest.fixture
def quadrant_entities():
    """
    150 points in the level-2 cell lng [0, 90) x lat [0, 45).

    50 fall in each of its SW, SE and NW level-3 children; the NE child
    stays empty.
    """
    return (quadrant_points(10, 5)
            + quadrant_points(50, 5)
            + quadrant_points(10, 25))


@pytest.fixture
def level1_entities():
    """30 points in each of the four level-1 cells."""
    entities = []
    for lat, lng in ((-45, -90), (-45, 90), (45, -90), (45, 90)):
        entities.extend((lat + (k % 5), lng + (k // 5)) for k in range(30))
    return entities


@pytest.fixture
def two_shard_table(level1_entities):
    """Level-1 table with shards {SW, SE} and {NW, NE}, 60 heat each."""
    return GeoshardBuilder.user_count_scorer(1, level1_entities, 40, 100).build()


@pytest.fixture
def quadrant_table(quadrant_entities):
    options = GeoshardBuilderOptions(storage_level=2, min_heat=40, max_heat=100)
    return GeoshardBuilder(quadrant_entities, options).build()


@pytest.fixture
def searcher(two_shard_table):
    return GeoshardSearcher.from_table(two_shard_table)


@pytest.fixture
def clean_root_logger():
    """Drop handlers a test installs on the root logger and restore its level."""
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers[:]:
        if handler not in handlers:
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
