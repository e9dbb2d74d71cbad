"""
Custom exceptions for bulk import/export operations.

This module defines a hierarchy of exceptions for the error conditions
met while reading tabular files, rendering exports and templates, and
wiring entity types into the engine. All exceptions inherit from
ExchangeError for consistent error handling.

Per-row problems found during an import never escape the import call:
they are folded into the ImportResult. The exceptions below surface from
readers, writers and configuration, or are raised by mappers and
validators to reject a single row.

Example:
    try:
        reader.parse(content)
    except ParseError as e:
        logger.error("Unreadable file: %s", e.reason)
    except ExchangeError as e:
        logger.error("General error: %s", e)
"""

from typing import Any


class ExchangeError(Exception):
    """
    Base exception for all bulk exchange errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code for API responses.
        details: Optional additional context about the error.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "EXCHANGE_ERROR",
        details: dict | None = None,
    ) -> None:
        """
        Initialize the ExchangeError.

        Args:
            message: Human-readable error description.
            error_code: Machine-readable error code for API responses.
            details: Optional additional context about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """
        Convert exception to a dictionary for API responses.

        Returns:
            Dictionary containing error_code, message, and details.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class UnsupportedFormatError(ExchangeError):
    """
    Raised when no reader or writer handles the requested file type.

    Attributes:
        filename: Name of the file that could not be dispatched.
        supported_extensions: Extensions that are handled.
    """

    def __init__(
        self,
        filename: str | None,
        supported_extensions: list[str] | None = None,
    ) -> None:
        """
        Initialize the UnsupportedFormatError.

        Args:
            filename: Name of the file that could not be dispatched.
            supported_extensions: Extensions that are handled.
        """
        self.filename = filename
        self.supported_extensions = supported_extensions or []

        message = f"Unsupported file format: {filename}"
        if self.supported_extensions:
            message += f". Supported: {', '.join(self.supported_extensions)}"

        super().__init__(
            message=message,
            error_code="UNSUPPORTED_FORMAT",
            details={
                "filename": filename,
                "supported_extensions": self.supported_extensions,
            },
        )


class ParseError(ExchangeError):
    """
    Raised when a tabular source cannot be read at the container level.

    This covers empty files, files without a usable header row and
    spreadsheet containers the underlying library refuses to open.
    Individual cells are never a reason for this error: readers only
    emit text.

    Attributes:
        source_format: Format being read (e.g. "csv", "xlsx").
        reason: Specific reason for the failure.
    """

    def __init__(
        self,
        source_format: str,
        reason: str | None = None,
    ) -> None:
        """
        Initialize the ParseError.

        Args:
            source_format: Format being read (e.g. "csv", "xlsx").
            reason: Specific reason for the failure.
        """
        self.source_format = source_format
        self.reason = reason

        message = f"Failed to parse {source_format} file"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="PARSE_ERROR",
            details={
                "source_format": source_format,
                "reason": reason,
            },
        )


class RenderError(ExchangeError):
    """
    Raised when an export or template cannot be serialized.

    Attributes:
        target_format: Format being written (e.g. "csv", "xlsx").
        operation: The rendering operation that failed.
    """

    def __init__(
        self,
        target_format: str,
        operation: str = "render",
        reason: str | None = None,
    ) -> None:
        """
        Initialize the RenderError.

        Args:
            target_format: Format being written (e.g. "csv", "xlsx").
            operation: The rendering operation that failed.
            reason: Specific reason for the failure.
        """
        self.target_format = target_format
        self.operation = operation
        self.reason = reason

        message = f"Failed to {operation} {target_format} file"
        if reason:
            message += f" - {reason}"

        super().__init__(
            message=message,
            error_code="RENDER_ERROR",
            details={
                "target_format": target_format,
                "operation": operation,
                "reason": reason,
            },
        )


class EntityNotRegisteredError(ExchangeError):
    """
    Raised when an entity name has no import or export registration.

    Attributes:
        entity: The requested entity name.
        available_entities: Entity names registered for the operation.
    """

    def __init__(
        self,
        entity: str,
        operation: str = "import",
        available_entities: list[str] | None = None,
    ) -> None:
        """
        Initialize the EntityNotRegisteredError.

        Args:
            entity: The requested entity name.
            operation: "import" or "export".
            available_entities: Entity names registered for the operation.
        """
        self.entity = entity
        self.operation = operation
        self.available_entities = available_entities or []

        message = f"Entity not registered for {operation}: {entity}"
        if self.available_entities:
            message += f". Available entities: {', '.join(self.available_entities)}"

        super().__init__(
            message=message,
            error_code="ENTITY_NOT_FOUND",
            details={
                "entity": entity,
                "operation": operation,
                "available_entities": self.available_entities,
            },
        )


class ConfigurationError(ExchangeError):
    """
    Raised when an entity type or the process is wired up incorrectly.

    Examples are a Saver exposing neither a single nor a bulk save
    operation, a non-positive batch size, or an unparsable setting.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details,
        )


class RowValidationError(ExchangeError):
    """
    Raised by mappers and validators to reject a single row.

    Attributes:
        field: Name of the offending field, when known.
        value: Offending raw value, when known.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        """
        Initialize the RowValidationError.

        Args:
            message: Explanation shown to the user for the row.
            field: Name of the offending field, when known.
            value: Offending raw value, when known.
        """
        self.field = field
        self.value = value

        super().__init__(
            message=message,
            error_code="ROW_VALIDATION_ERROR",
            details={
                "field": field,
                "value": None if value is None else str(value),
            },
        )


class PersistenceError(ExchangeError):
    """
    Raised when the injected save operation fails.

    Attributes:
        saved_count: Entities handed to the saver successfully before the failure.
        row_number: Row number of the first entity in the failing call.
        reason: Message of the underlying exception.
    """

    def __init__(
        self,
        saved_count: int,
        row_number: int,
        reason: str,
    ) -> None:
        """
        Initialize the PersistenceError.

        Args:
            saved_count: Entities handed to the saver successfully before the failure.
            row_number: Row number of the first entity in the failing call.
            reason: Message of the underlying exception.
        """
        self.saved_count = saved_count
        self.row_number = row_number
        self.reason = reason

        super().__init__(
            message=f"Failed to save row {row_number}: {reason}",
            error_code="PERSISTENCE_ERROR",
            details={
                "saved_count": saved_count,
                "row_number": row_number,
                "reason": reason,
            },
        )
