"""
Capability interfaces an entity type supplies to take part in exchange.

Each entity type plugs into the engine with:
    - a RowMapper converting raw rows into entities and describing columns,
    - a Saver persisting entities (single and/or bulk form),
    - a Finder returning entities for export,
    - a Validator checking structural constraints on mapped entities.

The engine never touches a database; it only calls these objects.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from bulkport.exceptions import ConfigurationError
from bulkport.models.exchange_models import ExportFilter
from bulkport.models.row import Row

T = TypeVar("T")

Finder = Callable[[ExportFilter], Iterable[Any]]
"""Callable returning the entities to export for a filter."""


class RowMapper(ABC, Generic[T]):
    """
    Converts rows of one entity type and describes its columns.

    Implementations are stateless and shared across imports. Raising from
    ``map_row`` or ``validate`` rejects the row; the message of the raised
    exception becomes the row's error message.

    Example:
        class CustomerMapper(RowMapper[Customer]):
            def required_columns(self):
                return ["email", "name"]

            def map_row(self, row, row_number):
                return Customer(email=row["email"], name=row["name"])

            def example_row(self):
                return Customer(email="jane@example.com", name="Jane")
    """

    @abstractmethod
    def map_row(self, row: Row, row_number: int) -> T:
        """
        Build a candidate entity from one row.

        Args:
            row: Raw cells keyed by the column names this mapper declares.
            row_number: Spreadsheet row number of the row (data starts at 2).
        """

    @abstractmethod
    def required_columns(self) -> list[str]:
        """Column names that must be present in every import file."""

    def optional_columns(self) -> list[str]:
        """Column names that may be present."""
        return []

    @abstractmethod
    def example_row(self) -> T:
        """An example entity used to fill the second row of templates."""

    def dropdown_options(self) -> dict[str, list[str]]:
        """Column name to allowed values, rendered as template dropdowns."""
        return {}

    def validate(self, entity: T, row_number: int) -> None:
        """Custom validation run after mapping; raise to reject the row."""
        return None

    def columns(self) -> list[str]:
        """Required columns followed by optional ones, without duplicates."""
        seen: set[str] = set()
        ordered: list[str] = []
        for name in [*self.required_columns(), *self.optional_columns()]:
            if name.casefold() not in seen:
                seen.add(name.casefold())
                ordered.append(name)
        return ordered


class Saver:
    """
    Persistence capability with a single-entity and/or a bulk form.

    Attributes:
        save_one: Callable persisting one entity, or None.
        save_many: Callable persisting a list of entities, or None.

    Example:
        saver = Saver(save_many=repository.insert_all)
    """

    def __init__(
        self,
        save_one: Callable[[Any], Any] | None = None,
        save_many: Callable[[list[Any]], Any] | None = None,
    ) -> None:
        self.save_one = save_one
        self.save_many = save_many

    @property
    def usable(self) -> bool:
        return self.save_one is not None or self.save_many is not None

    def ensure_usable(self) -> None:
        """
        Raises:
            ConfigurationError: If neither save form is available.
        """
        if not self.usable:
            raise ConfigurationError("No save operation available: provide save_one or save_many")

    def save(self, entity: Any) -> None:
        """Persist one entity, preferring the single-entity form."""
        if self.save_one is not None:
            self.save_one(entity)
        elif self.save_many is not None:
            self.save_many([entity])
        else:
            self.ensure_usable()


class ConstraintViolation(BaseModel):
    """
    One structural constraint failed by an entity.

    Attributes:
        field: Dotted path of the offending field, if known.
        message: Human-readable description.
        value: The offending value, if known.
    """

    model_config = ConfigDict(frozen=True)

    field: str | None = None
    message: str
    value: Any = None


class Validator(ABC):
    """Checks structural constraints on a mapped entity."""

    @abstractmethod
    def validate(self, entity: Any) -> list[ConstraintViolation]:
        """Return the violations found, or an empty list."""


class NullValidator(Validator):
    """Validator accepting every entity."""

    def validate(self, entity: Any) -> list[ConstraintViolation]:
        return []


class PydanticValidator(Validator):
    """
    Re-validates pydantic models against their declared field constraints.

    Models built with ``model_construct`` or mutated after creation may hold
    values their schema forbids; dumping and validating them again reports
    those. Non-pydantic entities pass unchecked.
    """

    def validate(self, entity: Any) -> list[ConstraintViolation]:
        if not isinstance(entity, BaseModel):
            return []
        try:
            type(entity).model_validate(entity.model_dump())
        except ValidationError as e:
            return violations_from_validation_error(e)
        return []


def violations_from_validation_error(error: ValidationError) -> list[ConstraintViolation]:
    """Convert a pydantic ValidationError into constraint violations, in order."""
    return [
        ConstraintViolation(
            field=".".join(str(part) for part in detail["loc"]) or None,
            message=detail["msg"],
            value=detail.get("input"),
        )
        for detail in error.errors()
    ]
