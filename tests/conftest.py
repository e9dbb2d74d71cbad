"""
Test fixtures and utilities for the bulk exchange tests.

This module provides a sample Customer entity with its mapper and an
in-memory repository, adapter and service instances, and helpers that
build spreadsheet files in memory.
"""

import io
from collections.abc import Callable
from datetime import date
from enum import Enum
from typing import Any

import pytest
from openpyxl import Workbook
from pydantic import BaseModel, Field

from bulkport.adapters import CalamineAdapter, CsvAdapter, OpenpyxlAdapter, XlsxWriterAdapter
from bulkport.exceptions import RowValidationError
from bulkport.models import (
    ExportFilter,
    ExportPolicy,
    FailureStrategy,
    ImportPolicy,
    Row,
    RowMapper,
    Saver,
)
from bulkport.services import ExportService, ImportService, TemplateService


class Status(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Address(BaseModel):
    city: str
    country: str = "FR"


class Customer(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(min_length=1)
    age: int | None = Field(default=None, ge=0, le=150)
    status: Status = Status.ACTIVE
    address: Address | None = None
    balance: float = 0.0
    joined: date | None = None


class CustomerMapper(RowMapper[Customer]):
    """Maps customer rows; the name "forbidden" is rejected by custom validation."""

    def required_columns(self) -> list[str]:
        return ["email", "name"]

    def optional_columns(self) -> list[str]:
        return ["age", "status", "address.city"]

    def map_row(self, row: Row, row_number: int) -> Customer:
        city = row.get("address.city")
        return Customer(
            email=row.get("email"),
            name=row.get("name") or "",
            age=row.get("age") or None,
            status=row.get("status") or Status.ACTIVE,
            address=Address(city=city) if city else None,
        )

    def example_row(self) -> Customer:
        return Customer(
            email="jane@example.com",
            name="Jane Doe",
            age=34,
            status=Status.ACTIVE,
            address=Address(city="Lyon"),
        )

    def dropdown_options(self) -> dict[str, list[str]]:
        return {"status": [s.value for s in Status]}

    def validate(self, entity: Customer, row_number: int) -> None:
        if entity.name.lower() == "forbidden":
            raise RowValidationError("Name is reserved", field="name", value=entity.name)


class InMemoryRepository:
    """
    Customer store recording every save call.

    Attributes:
        saved: Customers stored, in order.
        single_calls: Number of save() calls.
        batch_sizes: Size of each save_all() call.
        fail_on: Emails whose save raises.
    """

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.saved: list[Customer] = []
        self.single_calls = 0
        self.batch_sizes: list[int] = []
        self.fail_on = fail_on or set()

    def save(self, customer: Customer) -> None:
        self.single_calls += 1
        if customer.email in self.fail_on:
            raise RuntimeError(f"duplicate email {customer.email}")
        self.saved.append(customer)

    def save_all(self, customers: list[Customer]) -> None:
        self.batch_sizes.append(len(customers))
        for customer in customers:
            if customer.email in self.fail_on:
                raise RuntimeError(f"duplicate email {customer.email}")
        self.saved.extend(customers)

    def find(self, export_filter: ExportFilter) -> list[Customer]:
        customers = list(self.saved)
        status = export_filter.filters.get("status")
        if status:
            customers = [c for c in customers if c.status.value == status]
        if export_filter.sort_by:
            customers.sort(
                key=lambda c: getattr(c, export_filter.sort_by),
                reverse=export_filter.sort_dir == "desc",
            )
        if export_filter.page is not None and export_filter.size is not None:
            start = export_filter.page * export_filter.size
            customers = customers[start : start + export_filter.size]
        return customers


@pytest.fixture
def csv_adapter() -> CsvAdapter:
    """
    Create a CsvAdapter instance for testing.

    Returns:
        CsvAdapter instance.
    """
    return CsvAdapter()


@pytest.fixture
def openpyxl_adapter() -> OpenpyxlAdapter:
    """
    Create an OpenpyxlAdapter instance for testing.

    Returns:
        OpenpyxlAdapter instance.
    """
    return OpenpyxlAdapter()


@pytest.fixture
def calamine_adapter() -> CalamineAdapter:
    """
    Create a CalamineAdapter instance for testing.

    Returns:
        CalamineAdapter instance.
    """
    return CalamineAdapter()


@pytest.fixture
def xlsxwriter_adapter() -> XlsxWriterAdapter:
    """
    Create an XlsxWriterAdapter instance for testing.

    Returns:
        XlsxWriterAdapter instance.
    """
    return XlsxWriterAdapter()


@pytest.fixture
def import_service() -> ImportService:
    return ImportService()


@pytest.fixture
def export_service() -> ExportService:
    """ExportService with a fixed date for file names."""
    return ExportService(today=lambda: date(2024, 3, 15))


@pytest.fixture
def template_service() -> TemplateService:
    return TemplateService()


@pytest.fixture
def customer_mapper() -> CustomerMapper:
    return CustomerMapper()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def bulk_saver(repository: InMemoryRepository) -> Saver:
    """Saver exposing only the bulk form."""
    return Saver(save_many=repository.save_all)


@pytest.fixture
def single_saver(repository: InMemoryRepository) -> Saver:
    """Saver exposing only the single-entity form."""
    return Saver(save_one=repository.save)


@pytest.fixture
def make_policy(customer_mapper: CustomerMapper) -> Callable[..., ImportPolicy]:
    """
    Factory for customer import policies.

    Returns:
        Callable accepting ImportPolicy keyword overrides.
    """

    def build(**overrides: Any) -> ImportPolicy:
        values: dict[str, Any] = {"entity": "customer", "mapper": customer_mapper}
        values.update(overrides)
        return ImportPolicy(**values)

    return build


@pytest.fixture
def fail_fast_policy(make_policy: Callable[..., ImportPolicy]) -> ImportPolicy:
    return make_policy(failure_strategy=FailureStrategy.FAIL_FAST)


@pytest.fixture
def export_policy() -> ExportPolicy:
    return ExportPolicy.from_directives(
        "customer",
        ["email", "name", "address.city", "balance", "status", "joined"],
        [
            "balance: width=15, align=RIGHT, format=#,##0.00, color=GREEN|RED",
            "status: mapping=ACTIVE:GREEN,INACTIVE:RED",
        ],
    )


@pytest.fixture
def sample_customers() -> list[Customer]:
    """
    Create sample customers for export tests.

    Returns:
        Three customers, one without an address and one with a negative balance.
    """
    return [
        Customer(
            email="ann@example.com",
            name="Ann",
            age=41,
            address=Address(city="Paris"),
            balance=1250.5,
            joined=date(2023, 1, 9),
        ),
        Customer(
            email="bob@example.com",
            name="Bob",
            status=Status.INACTIVE,
            balance=-20.0,
        ),
        Customer(
            email="cy@example.com",
            name="Cy",
            address=Address(city="Nantes"),
            balance=0.0,
        ),
    ]


@pytest.fixture
def xlsx_bytes() -> Callable[[list[list[Any]]], bytes]:
    """
    Factory building an .xlsx file in memory with openpyxl.

    Returns:
        Callable turning a list of rows (header row first) into file bytes.
    """

    def build(rows: list[list[Any]]) -> bytes:
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "Data"
        for row in rows:
            worksheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return build
