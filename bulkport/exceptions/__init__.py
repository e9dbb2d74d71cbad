"""
Custom exceptions for the bulk exchange engine.

Provides type-safe, descriptive exceptions for error handling throughout
the application.
"""

from bulkport.exceptions.exchange_exceptions import (
    ConfigurationError,
    EntityNotRegisteredError,
    ExchangeError,
    ParseError,
    PersistenceError,
    RenderError,
    RowValidationError,
    UnsupportedFormatError,
)

__all__ = [
    "ExchangeError",
    "UnsupportedFormatError",
    "ParseError",
    "RenderError",
    "EntityNotRegisteredError",
    "ConfigurationError",
    "RowValidationError",
    "PersistenceError",
]
