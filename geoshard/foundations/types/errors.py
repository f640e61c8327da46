# geoshard/foundations/types/errors.py
"""Exception taxonomy for tiling, sharding and table serialization."""


class GeoshardError(Exception):
    """Base exception for all geoshard errors."""
    pass


class InvalidConfiguration(GeoshardError):
    """Raised when builder options or tiling parameters are invalid."""
    pass


class EmptyGeometryError(InvalidConfiguration):
    """Raised when the tiling cannot represent the requested level."""
    pass


class OutOfDomainError(GeoshardError, ValueError):
    """Raised when a coordinate lies outside the valid geographic domain."""

    def __init__(self, message: str, lat=None, lng=None):
        super().__init__(message)
        self.lat = lat
        self.lng = lng


class InvalidEntityError(GeoshardError, ValueError):
    """Raised when an entity record can't be read or carries a bad weight."""
    pass


class SerializationError(GeoshardError):
    """Raised when a persisted shard table is malformed."""
    pass


class InvalidTableError(SerializationError):
    """Raised when shards do not partition the domain exactly."""
    pass
