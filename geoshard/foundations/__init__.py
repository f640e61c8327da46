"""Foundation layer - pure types with no geoshard dependencies."""

from .types import (
    GeoshardError, InvalidConfiguration, EmptyGeometryError,
    OutOfDomainError, InvalidEntityError, SerializationError,
    InvalidTableError
)

__all__ = [
    'GeoshardError',
    'InvalidConfiguration',
    'EmptyGeometryError',
    'OutOfDomainError',
    'InvalidEntityError',
    'SerializationError',
    'InvalidTableError'
]
