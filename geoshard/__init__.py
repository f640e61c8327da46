"""
Heat-based adaptive geographic sharding.

This package partitions the longitude/latitude plane into shards holding a
bounded amount of heat (users, events) and resolves coordinates to the
shard that owns them.
"""

__version__ = "1.0.0"
__description__ = "Heat-based adaptive geographic sharding"

# Modules are imported explicitly where needed; importing the package
# only loads configuration defaults.

__all__ = [
    '__version__',
    '__description__',
]
