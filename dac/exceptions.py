# dac/exceptions.py
"""
Exceptions raised by the table engine.

Errors reported by the executor (constraint violations, lost connections, ...)
are not wrapped; they reach the caller exactly as the driver raised them.
"""

from typing import Optional


class DacError(Exception):
    """Base class for errors raised by dac itself."""


class ConfigurationError(DacError, ValueError):
    """Schema or table definition problem: blank names, no primary key, nothing to update."""


class MissingValueError(DacError, ValueError):
    """A record lacks a value the operation needs, such as a primary key."""


class ValidationError(DacError, ValueError):
    """
    A value was rejected by a validation rule.

    Rules raise it with just a message. When the engine re-raises it for a field,
    ``message`` holds the field-qualified text and ``field`` the field name.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        return self.message
