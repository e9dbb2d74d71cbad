"""
Data models for the bulk exchange engine.

Contains the Row type, capability interfaces, policies and the Pydantic
models returned to callers.
"""

from bulkport.models.capabilities import (
    ConstraintViolation,
    Finder,
    NullValidator,
    PydanticValidator,
    RowMapper,
    Saver,
    Validator,
)
from bulkport.models.exchange_models import (
    EntityInfo,
    ErrorResponse,
    ExportFile,
    ExportFilter,
    ExportFormat,
    FailureStrategy,
    ImportResult,
    ImportRowError,
)
from bulkport.models.policies import ExportPolicy, ImportPolicy
from bulkport.models.row import ParsedTable, Row

__all__ = [
    "Row",
    "ParsedTable",
    "RowMapper",
    "Saver",
    "Finder",
    "Validator",
    "NullValidator",
    "PydanticValidator",
    "ConstraintViolation",
    "FailureStrategy",
    "ExportFormat",
    "ImportRowError",
    "ImportResult",
    "ExportFilter",
    "ExportFile",
    "EntityInfo",
    "ErrorResponse",
    "ImportPolicy",
    "ExportPolicy",
]
