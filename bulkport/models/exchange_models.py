"""
Pydantic models for import/export requests and results.

These are the records exchanged with callers: the import result with its
per-row errors, the export filter handed to finders, and the rendered
output file. All models use Pydantic v2 and are frozen once built.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FailureStrategy(str, Enum):
    """
    How an import reacts to a failing row.

    FAIL_FAST stops at the first failing row, SKIP_ERRORS records the
    failure and moves on, COLLECT_ALL validates every row and saves only
    when none failed.
    """

    FAIL_FAST = "FAIL_FAST"
    SKIP_ERRORS = "SKIP_ERRORS"
    COLLECT_ALL = "COLLECT_ALL"


class ExportFormat(str, Enum):
    """Output formats for exports and templates."""

    XLSX = "xlsx"
    CSV = "csv"

    @property
    def content_type(self) -> str:
        if self is ExportFormat.CSV:
            return "text/csv"
        return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def from_string(cls, value: str | None, default: "ExportFormat | None" = None) -> "ExportFormat":
        """
        Look up a format by name, ignoring case and a leading dot.

        Args:
            value: Requested format such as "CSV", "xlsx" or ".csv".
            default: Format used when ``value`` is missing or unknown.
                Defaults to XLSX.
        """
        fallback = default or cls.XLSX
        if not value:
            return fallback
        normalized = value.strip().lower().lstrip(".")
        for member in cls:
            if member.value == normalized:
                return member
        return fallback


class ImportRowError(BaseModel):
    """
    One failed row of an import.

    Attributes:
        row: Spreadsheet row number of the failing row (data starts at 2).
        field: Offending field or column, when known.
        value: Offending raw value, when known.
        message: Human-readable explanation.
    """

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=1, description="Row number in the file (header is row 1)")
    field: str | None = Field(default=None, description="Offending field or column")
    value: str | None = Field(default=None, description="Offending raw value")
    message: str = Field(description="Human-readable error message")


class ImportResult(BaseModel):
    """
    Outcome of one import call.

    Attributes:
        success: Overall success flag; its meaning depends on the failure strategy.
        total_rows: Data rows found in the file after skipping blank rows.
        success_count: Entities reported as saved.
        error_count: Number of entries in ``errors``.
        duration_ms: Wall-clock time spent in the import call.
        errors: Failed rows in the order they were met.
        warnings: Non-fatal remarks about the file.
        message: One-line summary for the user.
    """

    success: bool
    total_rows: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    errors: list[ImportRowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    message: str = ""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "success": True,
                    "total_rows": 3,
                    "success_count": 2,
                    "error_count": 1,
                    "duration_ms": 14,
                    "errors": [
                        {"row": 4, "field": "email", "value": "nope", "message": "Invalid email address"}
                    ],
                    "warnings": [],
                    "message": "Partial import: 2/3 rows imported, 1 error(s)",
                }
            ]
        },
    )


class ExportFilter(BaseModel):
    """
    Filter and paging parameters passed unchanged to a Finder.

    Attributes:
        filters: Free-form field filters, e.g. {"status": "ACTIVE"}.
        page: 0-based page index, or None for no paging.
        size: Page size, or None for no paging.
        sort_by: Field to sort on.
        sort_dir: "asc" or "desc".
    """

    model_config = ConfigDict(frozen=True)

    filters: dict[str, Any] = Field(default_factory=dict)
    page: int | None = Field(default=None, ge=0)
    size: int | None = Field(default=None, ge=1)
    sort_by: str | None = None
    sort_dir: str = "asc"

    @field_validator("sort_dir")
    @classmethod
    def validate_sort_dir(cls, v: str) -> str:
        """Normalize the sort direction to "asc" or "desc"."""
        direction = v.strip().lower()
        if direction not in ("asc", "desc"):
            raise ValueError("sort_dir must be 'asc' or 'desc'")
        return direction


class ExportFile(BaseModel):
    """
    Rendered export or template.

    Attributes:
        success: Whether rendering succeeded; ``content`` is empty otherwise.
        content: File bytes.
        filename: Suggested download name.
        content_type: MIME type of ``content``.
        record_count: Entities written (0 for templates).
        message: Summary or failure reason.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    content: bytes = b""
    filename: str = ""
    content_type: str = ""
    record_count: int = Field(default=0, ge=0)
    message: str = ""


class EntityInfo(BaseModel):
    """What a registered entity type supports, as listed by the API."""

    name: str
    importable: bool
    exportable: bool
    required_columns: list[str] = Field(default_factory=list)
    optional_columns: list[str] = Field(default_factory=list)
    export_fields: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """
    Standard error response model for the API.

    Attributes:
        success: Always False for error responses.
        error_code: Machine-readable error code.
        message: Human-readable error description.
        details: Additional error context.
    """

    success: bool = Field(
        default=False,
        description="Always False for error responses",
    )
    error_code: str = Field(
        description="Machine-readable error code",
    )
    message: str = Field(
        description="Human-readable error description",
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context",
    )
