# geoshard/config/defaults.py
"""Default configuration values for shard building, search and logging."""

import os
from pathlib import Path

# Project path
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / 'logs'

PATHS = {
    'project_root': str(PROJECT_ROOT),
    'logs_dir': str(LOGS_DIR),
}

# Shard builder defaults - GeoshardBuilderOptions.from_config() reads these
SHARDING = {
    'storage_level': 8,          # base quadtree level (4^8 = 65536 base cells)
    'min_heat': 40,
    'max_heat': 100,
    'max_level': 30,             # finest level a hot cell may be split to
    'fold_stranded_runs': True,
    'name_prefix': 'geoshard_user_index_',
    'scorer': 'user_count',      # user_count, weighted
}

# Searcher defaults
SEARCH = {
    'ellipsoid': 'WGS84',
    'radius_samples': 72,        # azimuths sampled when bounding a radius query
    'default_radius_km': 50.0,
}

# Serialized table format
TABLE = {
    'indent': None,
}

# Grid defaults
GRIDS = {
    'default_bounds': [-180, -90, 180, 90],
    'quadtree': {
        'level': 8,
    },
}

# Named regions in addition to BoundsManager.REGIONS
BOUNDS = {
    'custom': {},
}

LOGGING = {
    'level': os.getenv('GEOSHARD_LOG_LEVEL', 'INFO'),
    'console': True,
    'file': None,                # set to a path to enable JSON file logging
    'max_file_size': 100 * 1024 * 1024,
    'backup_count': 5,
}
