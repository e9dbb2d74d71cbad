"""
Tests for the ImportService.

Covers file dispatch, the pre-checks run before any row is mapped, and
the three failure strategies.
"""

from collections.abc import Callable
from typing import Any

import pytest
from pydantic import ValidationError

from bulkport.exceptions import RowValidationError
from bulkport.models import (
    ConstraintViolation,
    FailureStrategy,
    ImportPolicy,
    PydanticValidator,
    Row,
    Saver,
    Validator,
)
from bulkport.services import ImportService
from bulkport.services.import_service import row_error
from tests.conftest import Customer, CustomerMapper, InMemoryRepository

VALID_CSV = (
    b"email,name,age\n"
    b"ann@example.com,Ann,41\n"
    b"bob@example.com,Bob,\n"
    b"cy@example.com,Cy,29\n"
)

PolicyFactory = Callable[..., ImportPolicy]


def _csv(*lines: str) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


class RecordingMapper(CustomerMapper):
    """Customer mapper remembering which rows it mapped."""

    def __init__(self) -> None:
        self.mapped: list[int] = []

    def map_row(self, row: Row, row_number: int) -> Customer:
        self.mapped.append(row_number)
        return super().map_row(row, row_number)


class TestImportPreChecks:
    """Tests for the checks run before rows are processed."""

    def test_unsupported_extension(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.txt", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message.startswith("Unsupported file format: customers.txt")
        assert ".csv" in result.message
        assert result.total_rows == 0

    def test_missing_filename(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(VALID_CSV, None, make_policy(), bulk_saver)

        assert result.success is False

    def test_extension_is_case_insensitive(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "CUSTOMERS.CSV", make_policy(), bulk_saver)

        assert result.success is True

    def test_unusable_saver(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", make_policy(), Saver())

        assert result.success is False
        assert result.message == "No save operation available for entity 'customer'"

    def test_unreadable_workbook(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(b"not a workbook", "customers.xlsx", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message.startswith("Failed to parse xlsx file")

    def test_too_many_rows(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", make_policy(max_rows=2), bulk_saver)

        assert result.success is False
        assert result.message == "Too many rows in file: 3. Maximum allowed: 2"
        assert result.total_rows == 3
        assert repository.saved == []

    def test_row_limit_is_inclusive(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", make_policy(max_rows=3), bulk_saver)

        assert result.success is True

    def test_missing_required_columns(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(_csv("email,age", "a@b.c,3"), "c.csv", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message == "Missing required columns: name"

    def test_no_data_rows(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(_csv("email,name"), "c.csv", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message == "File contains no data rows"
        assert result.total_rows == 0

    def test_only_blank_rows(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(_csv("email,name", ",", " , "), "c.csv", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message == "File contains no data rows"
        assert result.warnings == ["Skipped 2 blank row(s)"]


class TestImportHeaders:
    """Tests for header matching."""

    def test_headers_match_case_insensitively(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        content = _csv("EMAIL *,Name *,Address.City", "ann@example.com,Ann,Lyon")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.success is True
        assert repository.saved[0].name == "Ann"
        assert repository.saved[0].address.city == "Lyon"

    def test_undeclared_columns_are_ignored_with_warning(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        content = _csv("email,name,nickname", "ann@example.com,Ann,Annie")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.success is True
        assert result.warnings == ["Ignoring undeclared columns: nickname"]


class TestSkipErrors:
    """Tests for the SKIP_ERRORS strategy."""

    def test_all_rows_valid(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", make_policy(), bulk_saver)

        assert result.success is True
        assert result.total_rows == 3
        assert result.success_count == 3
        assert result.error_count == 0
        assert result.message == "Import succeeded: 3/3 rows imported"
        assert [c.email for c in repository.saved] == [
            "ann@example.com",
            "bob@example.com",
            "cy@example.com",
        ]
        assert repository.saved[1].age is None

    def test_saves_each_row_on_its_own(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        import_service.import_file(VALID_CSV, "customers.csv", make_policy(), bulk_saver)

        assert repository.batch_sizes == [1, 1, 1]

    def test_prefers_single_save(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        repository: InMemoryRepository,
    ) -> None:
        saver = Saver(save_one=repository.save, save_many=repository.save_all)

        import_service.import_file(VALID_CSV, "customers.csv", make_policy(), saver)

        assert repository.single_calls == 3
        assert repository.batch_sizes == []

    def test_partial_import(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        """Test that the invalid third data row is reported as spreadsheet row 4."""
        content = _csv("email,name", "ann@example.com,Ann", "bob@example.com,Bob", "not-an-email,Cy")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.success is True
        assert result.success_count == 2
        assert result.error_count == 1
        assert result.message == "Partial import: 2/3 rows imported, 1 error(s)"
        error = result.errors[0]
        assert error.row == 4
        assert error.field == "email"
        assert error.value == "not-an-email"
        assert len(repository.saved) == 2

    def test_no_valid_rows(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        content = _csv("email,name,age", "ann@example.com,Ann,old", "bob,Bob,3")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.success is False
        assert result.message == "Import failed: no rows imported, 2 error(s)"
        assert [(e.row, e.field) for e in result.errors] == [(2, "age"), (3, "email")]

    def test_custom_validation_rejects_row(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        content = _csv("email,name", "ann@example.com,Forbidden", "bob@example.com,Bob")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.success_count == 1
        assert result.errors[0].model_dump() == {
            "row": 2,
            "field": "name",
            "value": "Forbidden",
            "message": "Name is reserved",
        }

    def test_save_failure_is_recorded_and_skipped(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
    ) -> None:
        repository = InMemoryRepository(fail_on={"bob@example.com"})

        result = import_service.import_file(
            VALID_CSV,
            "customers.csv",
            make_policy(),
            Saver(save_one=repository.save),
        )

        assert result.success_count == 2
        assert result.errors[0].row == 3
        assert result.errors[0].message == "Failed to save row 3: duplicate email bob@example.com"

    def test_row_numbers_follow_data_rows(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        """Test that skipped blank lines do not count towards reported row numbers."""
        content = _csv("email,name", "ann@example.com,Ann", ",", "bad,Bob")

        result = import_service.import_file(content, "c.csv", make_policy(), bulk_saver)

        assert result.total_rows == 2
        assert result.errors[0].row == 3
        assert result.warnings == ["Skipped 1 blank row(s)"]

    def test_structural_validator(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        class NoBobs(Validator):
            def validate(self, entity: Any) -> list[ConstraintViolation]:
                if entity.name == "Bob":
                    return [ConstraintViolation(field="name", message="Bobs are not allowed", value="Bob")]
                return []

        result = import_service.import_file(VALID_CSV, "customers.csv", make_policy(), bulk_saver, NoBobs())

        assert result.success_count == 2
        assert result.errors[0].row == 3
        assert result.errors[0].message == "Bobs are not allowed"

    def test_pydantic_validator_accepts_valid_models(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
    ) -> None:
        result = import_service.import_file(
            VALID_CSV,
            "customers.csv",
            make_policy(),
            bulk_saver,
            PydanticValidator(),
        )

        assert result.success_count == 3


class TestFailFast:
    """Tests for the FAIL_FAST strategy."""

    def test_stops_at_first_error(
        self,
        import_service: ImportService,
        fail_fast_policy: ImportPolicy,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        content = _csv("email,name", "ann@example.com,Ann", "bad,Bob", "cy@example.com,Cy")

        result = import_service.import_file(content, "c.csv", fail_fast_policy, bulk_saver)

        assert result.success is False
        assert result.success_count == 1
        assert result.error_count == 1
        assert result.errors[0].row == 3
        assert result.message.startswith("Import stopped at row 3: ")
        assert [c.email for c in repository.saved] == ["ann@example.com"]

    def test_error_on_first_row_saves_nothing(
        self,
        import_service: ImportService,
        fail_fast_policy: ImportPolicy,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        content = _csv("email,name", "bad,Ann", "bob@example.com,Bob")

        result = import_service.import_file(content, "c.csv", fail_fast_policy, bulk_saver)

        assert result.success_count == 0
        assert repository.batch_sizes == []

    def test_saves_in_batches(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        lines = ["email,name"] + [f"user{i}@example.com,User {i}" for i in range(5)]
        policy = make_policy(failure_strategy=FailureStrategy.FAIL_FAST, batch_size=2)

        result = import_service.import_file(_csv(*lines), "c.csv", policy, bulk_saver)

        assert result.success is True
        assert result.success_count == 5
        assert result.message == "Import succeeded: 5/5 rows imported"
        assert repository.batch_sizes == [2, 2, 1]

    def test_failing_batch_stops_import(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
    ) -> None:
        repository = InMemoryRepository(fail_on={"c@example.com"})
        lines = ["email,name", "a@example.com,A", "b@example.com,B", "c@example.com,C", "d@example.com,D"]
        policy = make_policy(failure_strategy=FailureStrategy.FAIL_FAST, batch_size=2)

        result = import_service.import_file(_csv(*lines), "c.csv", policy, Saver(save_many=repository.save_all))

        assert result.success is False
        assert result.success_count == 2
        assert result.errors[0].row == 4
        assert result.message == "Import stopped at row 4: Failed to save row 4: duplicate email c@example.com"

    def test_single_saver_is_called_per_entity(
        self,
        import_service: ImportService,
        fail_fast_policy: ImportPolicy,
        single_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", fail_fast_policy, single_saver)

        assert result.success is True
        assert repository.single_calls == 3

    def test_single_saver_failure_stops_before_next_row(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
    ) -> None:
        mapper = RecordingMapper()
        repository = InMemoryRepository(fail_on={"a@example.com"})
        lines = ["email,name", "a@example.com,A", "b@example.com,B", "c@example.com,C", "d@example.com,D"]
        policy = make_policy(failure_strategy=FailureStrategy.FAIL_FAST, mapper=mapper)

        result = import_service.import_file(_csv(*lines), "c.csv", policy, Saver(save_one=repository.save))

        assert result.success is False
        assert result.success_count == 0
        assert result.errors[0].row == 2
        assert mapper.mapped == [2]
        assert repository.single_calls == 1

    def test_bulk_saver_maps_whole_batch_before_saving(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
    ) -> None:
        mapper = RecordingMapper()
        repository = InMemoryRepository(fail_on={"a@example.com"})
        lines = ["email,name", "a@example.com,A", "b@example.com,B", "c@example.com,C", "d@example.com,D"]
        policy = make_policy(failure_strategy=FailureStrategy.FAIL_FAST, batch_size=2, mapper=mapper)

        result = import_service.import_file(_csv(*lines), "c.csv", policy, Saver(save_many=repository.save_all))

        assert result.errors[0].row == 2
        assert mapper.mapped == [2, 3]


class TestCollectAll:
    """Tests for the COLLECT_ALL strategy."""

    @pytest.fixture
    def collect_all_policy(self, make_policy: PolicyFactory) -> ImportPolicy:
        return make_policy(failure_strategy=FailureStrategy.COLLECT_ALL, batch_size=2)

    def test_any_error_saves_nothing(
        self,
        import_service: ImportService,
        collect_all_policy: ImportPolicy,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        content = _csv("email,name,age", "ann@example.com,Ann,1", "bad,Bob,2", "cy@example.com,Cy,-1")

        result = import_service.import_file(content, "c.csv", collect_all_policy, bulk_saver)

        assert result.success is False
        assert result.success_count == 0
        assert [(e.row, e.field) for e in result.errors] == [(3, "email"), (4, "age")]
        assert result.message == "2 error(s) found. No rows were saved"
        assert repository.saved == []

    def test_all_valid_rows_are_saved_in_batches(
        self,
        import_service: ImportService,
        collect_all_policy: ImportPolicy,
        bulk_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", collect_all_policy, bulk_saver)

        assert result.success is True
        assert result.success_count == 3
        assert repository.batch_sizes == [2, 1]

    def test_save_failure_reports_nothing_imported(
        self,
        import_service: ImportService,
        collect_all_policy: ImportPolicy,
    ) -> None:
        repository = InMemoryRepository(fail_on={"cy@example.com"})

        result = import_service.import_file(
            VALID_CSV,
            "customers.csv",
            collect_all_policy,
            Saver(save_many=repository.save_all),
        )

        assert result.success is False
        assert result.success_count == 0
        assert result.error_count == 1
        assert result.errors[0].row == 4
        assert result.message == "Save failed, import not applied: duplicate email cy@example.com"
        assert result.warnings == [
            "2 entities were passed to the save operation before it failed; they are not counted as imported"
        ]

    def test_single_saver(
        self,
        import_service: ImportService,
        collect_all_policy: ImportPolicy,
        single_saver: Saver,
        repository: InMemoryRepository,
    ) -> None:
        result = import_service.import_file(VALID_CSV, "customers.csv", collect_all_policy, single_saver)

        assert result.success is True
        assert repository.single_calls == 3


class TestSpreadsheetImport:
    """Tests importing spreadsheet files end to end."""

    def test_xlsx_import(
        self,
        import_service: ImportService,
        make_policy: PolicyFactory,
        bulk_saver: Saver,
        repository: InMemoryRepository,
        xlsx_bytes: Callable[[list[list[Any]]], bytes],
    ) -> None:
        content = xlsx_bytes(
            [
                ["email *", "name *", "age", "status"],
                ["ann@example.com", "Ann", 41, "INACTIVE"],
                ["bob@example.com", "Bob", 35.0, None],
            ]
        )

        result = import_service.import_file(content, "customers.xlsx", make_policy(), bulk_saver)

        assert result.success is True
        assert [c.age for c in repository.saved] == [41, 35]
        assert repository.saved[0].status.value == "INACTIVE"


class TestRowError:
    """Tests for per-row error descriptions."""

    def test_from_validation_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Customer(email="a@b.c", name="Ann", age="many")

        error = row_error(7, exc_info.value)

        assert error.row == 7
        assert error.field == "age"
        assert error.value == "many"

    def test_from_row_validation_error(self) -> None:
        error = row_error(2, RowValidationError("Unknown plan", field="plan", value="gold"))

        assert (error.field, error.value, error.message) == ("plan", "gold", "Unknown plan")

    def test_from_other_exception(self) -> None:
        assert row_error(3, KeyError()).message == "KeyError"
        assert row_error(3, ValueError("bad date")).message == "bad date"
