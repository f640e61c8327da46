# geoshard/config/config.py
"""Layered settings: built-in defaults overridden by an optional YAML file."""

import copy
import logging
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Iterable

from . import defaults

logger = logging.getLogger(__name__)

ENV_VAR = 'GEOSHARD_CONFIG'

DEFAULT_SECTIONS = {
    'paths': defaults.PATHS,
    'sharding': defaults.SHARDING,
    'search': defaults.SEARCH,
    'table': defaults.TABLE,
    'grids': defaults.GRIDS,
    'bounds': defaults.BOUNDS,
    'logging': defaults.LOGGING,
}


def candidate_files() -> Iterable[Path]:
    """Search order when no file is given: $GEOSHARD_CONFIG, ./geoshard.yml, ~/.geoshard/config.yml."""
    env_path = os.environ.get(ENV_VAR)
    if env_path:
        yield Path(env_path)
        return
    yield Path.cwd() / 'geoshard.yml'
    yield Path.home() / '.geoshard' / 'config.yml'


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into ``base`` in place, recursing into nested mappings."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = value
    return base


class Config:
    """
    Settings tree with dotted lookups.

    ``Config(path)`` reads exactly that file. ``Config()`` takes the first
    file from :func:`candidate_files`; an explicit path from the
    environment is used even when it does not exist yet, so the missing
    file is reported.
    """

    def __init__(self, config_file: Optional[Path] = None):
        self.settings: Dict[str, Any] = copy.deepcopy(DEFAULT_SECTIONS)
        self.source: Optional[Path] = None

        if config_file is None:
            config_file = next(
                (p for p in candidate_files() if os.environ.get(ENV_VAR) or p.is_file()),
                None
            )
        if config_file is None:
            return

        config_file = Path(config_file)
        if not config_file.exists():
            logger.warning(f"Config file {config_file} not found - using defaults")
            return
        self.load_file(config_file)

    def load_file(self, path: Path):
        """Merge one YAML mapping over the current settings."""
        with open(path, 'r') as handle:
            overrides = yaml.safe_load(handle)
        if overrides is None:
            overrides = {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(overrides).__name__}")
        deep_merge(self.settings, overrides)
        self.source = Path(path)
        logger.debug(f"Loaded configuration from {path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Look up ``'section.key.subkey'``; ``default`` when any part is missing."""
        node: Any = self.settings
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @property
    def sharding(self) -> Dict[str, Any]:
        return self.settings['sharding']

    @property
    def search(self) -> Dict[str, Any]:
        return self.settings['search']

    @property
    def table(self) -> Dict[str, Any]:
        return self.settings['table']

    @property
    def grids(self) -> Dict[str, Any]:
        return self.settings['grids']

    @property
    def logging(self) -> Dict[str, Any]:
        return self.settings['logging']

    @property
    def paths(self) -> Dict[str, Any]:
        return self.settings['paths']


# Process-wide settings
config = Config()
