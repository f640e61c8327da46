# geoshard/foundations/types/__init__.py
"""Foundation types with no geoshard dependencies."""

from .errors import (
    GeoshardError, InvalidConfiguration, EmptyGeometryError,
    OutOfDomainError, InvalidEntityError, SerializationError,
    InvalidTableError
)

__all__ = [
    'GeoshardError', 'InvalidConfiguration', 'EmptyGeometryError',
    'OutOfDomainError', 'InvalidEntityError', 'SerializationError',
    'InvalidTableError'
]
