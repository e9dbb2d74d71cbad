"""
Immutable import and export policies attached to an entity type.

Policies are built once when an entity type is registered and are never
mutated afterwards, so they can be shared by concurrent calls.
"""

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bulkport.models.capabilities import RowMapper
from bulkport.models.exchange_models import ExportFormat, FailureStrategy
from bulkport.utils.style_parser import StyleDirective, parse_column_styles

DEFAULT_MAX_ROWS = 5000
DEFAULT_BATCH_SIZE = 100


class ImportPolicy(BaseModel):
    """
    How files are imported for one entity type.

    Attributes:
        entity: Entity name, used in messages and file names.
        mapper: RowMapper turning rows into entities.
        max_rows: Largest number of data rows accepted in one file.
        batch_size: Entities per bulk save call.
        failure_strategy: Reaction to failing rows.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity: str = Field(min_length=1)
    mapper: RowMapper
    max_rows: int = Field(default=DEFAULT_MAX_ROWS, ge=1)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    failure_strategy: FailureStrategy = FailureStrategy.SKIP_ERRORS


class ExportPolicy(BaseModel):
    """
    How records of one entity type are exported.

    Attributes:
        entity: Entity name.
        fields: Field paths to export, in column order (dots for nesting).
        filename: File name stem; defaults to ``"{entity}-export"``.
        default_format: Format used when the caller does not pick one.
        styles: Field path to parsed style directive.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    entity: str = Field(min_length=1)
    fields: list[str] = Field(min_length=1)
    filename: str | None = None
    default_format: ExportFormat = ExportFormat.XLSX
    styles: dict[str, StyleDirective] = Field(default_factory=dict)

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: list[str]) -> list[str]:
        """Strip field paths and reject blank ones."""
        cleaned = [path.strip() for path in v]
        if any(not path for path in cleaned):
            raise ValueError("field paths must not be blank")
        return cleaned

    @property
    def filename_stem(self) -> str:
        return self.filename or f"{self.entity}-export"

    @classmethod
    def from_directives(
        cls,
        entity: str,
        fields: list[str],
        directives: str | Iterable[str] = (),
        **kwargs,
    ) -> "ExportPolicy":
        """
        Build a policy from raw ``"column: key=value, ..."`` directive lines.

        Example:
            policy = ExportPolicy.from_directives(
                "account",
                ["number", "balance"],
                ["balance: width=15, align=RIGHT, format=#,##0.00, color=GREEN|RED"],
            )
        """
        return cls(
            entity=entity,
            fields=fields,
            styles=parse_column_styles(directives),
            **kwargs,
        )
