"""
Import orchestration: from file bytes to saved entities.

The ImportService picks a reader by file extension, checks the row count
and the header set, then runs every row through the same pipeline:

    map row -> mapper validation -> structural validation

and hands valid entities to the Saver according to the policy's
failure strategy. Every outcome, including unexpected failures, comes
back as an ImportResult; nothing raises past ``import_file``.
"""

import logging
import time
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from bulkport.adapters import CalamineAdapter, CsvAdapter, OpenpyxlAdapter, TabularReader
from bulkport.exceptions import ExchangeError, PersistenceError, RowValidationError, UnsupportedFormatError
from bulkport.models import (
    FailureStrategy,
    ImportPolicy,
    ImportResult,
    ImportRowError,
    NullValidator,
    Row,
    Saver,
    Validator,
)

logger = logging.getLogger(__name__)

FIRST_DATA_ROW = 2


def _text(value: Any) -> str | None:
    # Whole-model inputs (dicts of every field) say nothing about the offending value.
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    return str(value)


def row_error(row_number: int, exc: BaseException) -> ImportRowError:
    """
    Describe a per-row failure.

    A pydantic ValidationError reports its first error's location, input
    and message; a RowValidationError keeps its field and value; any other
    exception contributes its message.
    """
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        return ImportRowError(
            row=row_number,
            field=loc or None,
            value=_text(first.get("input")),
            message=first["msg"],
        )
    if isinstance(exc, RowValidationError):
        return ImportRowError(
            row=row_number,
            field=exc.field,
            value=_text(exc.value),
            message=exc.message,
        )
    return ImportRowError(row=row_number, message=str(exc) or type(exc).__name__)


class _Outcome:
    """Mutable tally filled in while one import runs."""

    def __init__(self) -> None:
        self.saved = 0
        self.errors: list[ImportRowError] = []
        self.warnings: list[str] = []
        self.success = False
        self.message = ""


class ImportService:
    """
    Runs imports for any entity type.

    The service holds no per-import state and can serve concurrent calls.

    Attributes:
        readers: Readers tried in order; the first that supports the file
            name reads the file.

    Example:
        service = ImportService()
        result = service.import_file(content, "customers.csv", policy, saver)
        if not result.success:
            for error in result.errors:
                print(error.row, error.message)
    """

    def __init__(self, readers: Sequence[TabularReader] | None = None) -> None:
        """
        Initialize the ImportService.

        Args:
            readers: Readers to dispatch to; defaults to CSV, openpyxl (.xlsx)
                and calamine (.xls, .xlsb, .ods).
        """
        if readers is None:
            readers = (CsvAdapter(), OpenpyxlAdapter(), CalamineAdapter())
        self.readers = tuple(readers)

    @property
    def supported_extensions(self) -> list[str]:
        return [ext for reader in self.readers for ext in reader.SUPPORTED_EXTENSIONS]

    def find_reader(self, filename: str | None) -> TabularReader | None:
        """Return the first reader supporting ``filename``, or None."""
        for reader in self.readers:
            if reader.supports(filename):
                return reader
        return None

    def import_file(
        self,
        content: bytes,
        filename: str | None,
        policy: ImportPolicy,
        saver: Saver,
        validator: Validator | None = None,
    ) -> ImportResult:
        """
        Import one file.

        Args:
            content: Raw file content.
            filename: Original file name, used to pick a reader.
            policy: Import policy of the entity type.
            saver: Persistence capability of the entity type.
            validator: Structural validator; defaults to accepting everything.

        Returns:
            ImportResult describing the run. ``success`` is False for
            configuration problems (no save operation, unsupported or
            unreadable file, too many rows, missing columns, no data rows)
            and otherwise follows the failure strategy.
        """
        start = time.perf_counter()
        validator = validator or NullValidator()
        logger.info(
            "Starting import for entity '%s' from file '%s' (%s)",
            policy.entity,
            filename,
            policy.failure_strategy.value,
        )

        total_rows = 0
        try:
            if not saver.usable:
                return self._failure(
                    start,
                    f"No save operation available for entity '{policy.entity}'",
                )

            reader = self.find_reader(filename)
            if reader is None:
                return self._failure(
                    start,
                    UnsupportedFormatError(filename, self.supported_extensions).message,
                )

            try:
                table = reader.read_table(content)
            except ExchangeError as e:
                logger.warning("Cannot read file '%s': %s", filename, e.message)
                return self._failure(start, e.message)

            rows = table.rows
            total_rows = len(rows)
            outcome = _Outcome()
            if table.skipped_blank_rows:
                outcome.warnings.append(f"Skipped {table.skipped_blank_rows} blank row(s)")

            if total_rows > policy.max_rows:
                return self._failure(
                    start,
                    f"Too many rows in file: {total_rows}. Maximum allowed: {policy.max_rows}",
                    total_rows=total_rows,
                )

            mapper = policy.mapper
            declared = {name.casefold(): name for name in mapper.columns()}
            present = {header.casefold() for header in table.headers}
            missing = [name for name in mapper.required_columns() if name.casefold() not in present]
            if missing:
                return self._failure(
                    start,
                    f"Missing required columns: {', '.join(missing)}",
                    total_rows=total_rows,
                )

            undeclared = [header for header in table.headers if header.casefold() not in declared]
            if undeclared:
                outcome.warnings.append(f"Ignoring undeclared columns: {', '.join(undeclared)}")

            if total_rows == 0:
                return self._failure(start, "File contains no data rows", warnings=outcome.warnings)

            renames = {
                header: declared[header.casefold()]
                for header in table.headers
                if header.casefold() in declared and declared[header.casefold()] != header
            }
            if renames:
                rows = tuple(row.rename(renames) for row in rows)

            strategy = policy.failure_strategy
            if strategy is FailureStrategy.FAIL_FAST:
                self._run_fail_fast(rows, policy, saver, validator, outcome)
            elif strategy is FailureStrategy.COLLECT_ALL:
                self._run_collect_all(rows, policy, saver, validator, outcome)
            else:
                self._run_skip_errors(rows, policy, saver, validator, outcome)

            result = ImportResult(
                success=outcome.success,
                total_rows=total_rows,
                success_count=outcome.saved,
                error_count=len(outcome.errors),
                duration_ms=self._elapsed_ms(start),
                errors=outcome.errors,
                warnings=outcome.warnings,
                message=outcome.message,
            )
            logger.info(
                "Finished import for entity '%s': %d/%d saved, %d error(s) in %d ms",
                policy.entity,
                result.success_count,
                result.total_rows,
                result.error_count,
                result.duration_ms,
            )
            return result

        except Exception as e:
            logger.exception("Import failed for entity '%s'", policy.entity)
            return self._failure(start, f"Import failed: {e}", total_rows=total_rows)

    def _process_row(
        self,
        row: Row,
        row_number: int,
        policy: ImportPolicy,
        validator: Validator,
    ) -> Any:
        """
        Map and validate one row.

        Raises:
            Exception: Whatever the mapper raised, or RowValidationError for
                the first structural violation.
        """
        entity = policy.mapper.map_row(row, row_number)
        policy.mapper.validate(entity, row_number)
        violations = validator.validate(entity)
        if violations:
            first = violations[0]
            raise RowValidationError(first.message, field=first.field, value=first.value)
        return entity

    def _record(self, outcome: _Outcome, row_number: int, exc: BaseException) -> ImportRowError:
        error = row_error(row_number, exc)
        outcome.errors.append(error)
        logger.warning("Error at row %d: %s", row_number, error.message)
        return error

    def _save_batches(
        self,
        saver: Saver,
        numbered: Sequence[tuple[int, Any]],
        batch_size: int,
    ) -> int:
        """
        Save entities in order, in fixed-size batches.

        The bulk form receives one call per batch. Without it, entities are
        saved one at a time.

        Args:
            saver: Persistence capability.
            numbered: ``(row_number, entity)`` pairs in file order.
            batch_size: Entities per bulk call.

        Returns:
            Number of entities saved.

        Raises:
            PersistenceError: On the first failing save call, carrying the
                count saved before it and the row number it failed on.
        """
        saved = 0
        for offset in range(0, len(numbered), batch_size):
            batch = numbered[offset : offset + batch_size]
            if saver.save_many is not None:
                try:
                    saver.save_many([entity for _, entity in batch])
                except Exception as e:
                    raise PersistenceError(saved, batch[0][0], str(e) or type(e).__name__) from e
                saved += len(batch)
                logger.debug(
                    "Saved batch %d: %d entities",
                    offset // batch_size + 1,
                    len(batch),
                )
            else:
                for row_number, entity in batch:
                    try:
                        saver.save_one(entity)
                    except Exception as e:
                        raise PersistenceError(saved, row_number, str(e) or type(e).__name__) from e
                    saved += 1
        return saved

    def _run_fail_fast(
        self,
        rows: Sequence[Row],
        policy: ImportPolicy,
        saver: Saver,
        validator: Validator,
        outcome: _Outcome,
    ) -> None:
        """
        Stop at the first failing row.

        With a bulk save, valid entities are buffered and saved each time a
        full batch is collected, so the rows of one batch are all mapped
        before any of them is saved. With only a single-entity save, each
        entity is saved as soon as it passes validation and nothing after a
        failing save is processed. Rows before a failing row are saved
        before stopping.
        """
        pending: list[tuple[int, Any]] = []
        batch_size = policy.batch_size if saver.save_many is not None else 1

        def flush() -> bool:
            if not pending:
                return True
            try:
                outcome.saved += self._save_batches(saver, pending, policy.batch_size)
            except PersistenceError as e:
                outcome.saved += e.saved_count
                error = self._record(outcome, e.row_number, e)
                outcome.message = f"Import stopped at row {e.row_number}: {error.message}"
                return False
            finally:
                pending.clear()
            return True

        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                entity = self._process_row(row, row_number, policy, validator)
            except Exception as e:
                if flush():
                    error = self._record(outcome, row_number, e)
                    outcome.message = f"Import stopped at row {row_number}: {error.message}"
                return

            pending.append((row_number, entity))
            if len(pending) >= batch_size and not flush():
                return

        if flush():
            outcome.success = True
            outcome.message = f"Import succeeded: {outcome.saved}/{len(rows)} rows imported"

    def _run_skip_errors(
        self,
        rows: Sequence[Row],
        policy: ImportPolicy,
        saver: Saver,
        validator: Validator,
        outcome: _Outcome,
    ) -> None:
        """Save each valid row immediately; record failures and continue."""
        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                entity = self._process_row(row, row_number, policy, validator)
            except Exception as e:
                self._record(outcome, row_number, e)
                continue

            try:
                saver.save(entity)
            except Exception as e:
                self._record(
                    outcome,
                    row_number,
                    PersistenceError(outcome.saved, row_number, str(e) or type(e).__name__),
                )
                continue
            outcome.saved += 1

        total = len(rows)
        error_count = len(outcome.errors)
        outcome.success = outcome.saved > 0
        if error_count == 0:
            outcome.message = f"Import succeeded: {outcome.saved}/{total} rows imported"
        elif outcome.saved > 0:
            outcome.message = f"Partial import: {outcome.saved}/{total} rows imported, {error_count} error(s)"
        else:
            outcome.message = f"Import failed: no rows imported, {error_count} error(s)"

    def _run_collect_all(
        self,
        rows: Sequence[Row],
        policy: ImportPolicy,
        saver: Saver,
        validator: Validator,
        outcome: _Outcome,
    ) -> None:
        """
        Validate every row, then save all of them or none.

        If the save phase fails partway, the run is reported with a single
        error and zero saved rows even though earlier save calls completed;
        a warning states how many entities were already handed over.
        """
        valid: list[tuple[int, Any]] = []
        for index, row in enumerate(rows):
            row_number = index + FIRST_DATA_ROW
            try:
                valid.append((row_number, self._process_row(row, row_number, policy, validator)))
            except Exception as e:
                self._record(outcome, row_number, e)

        if outcome.errors:
            outcome.message = f"{len(outcome.errors)} error(s) found. No rows were saved"
            return

        try:
            outcome.saved = self._save_batches(saver, valid, policy.batch_size)
        except PersistenceError as e:
            self._record(outcome, e.row_number, e)
            if e.saved_count:
                outcome.warnings.append(
                    f"{e.saved_count} entities were passed to the save operation before it "
                    "failed; they are not counted as imported"
                )
            outcome.message = f"Save failed, import not applied: {e.reason}"
            return

        outcome.success = True
        outcome.message = f"Import succeeded: {outcome.saved}/{len(rows)} rows imported"

    def _elapsed_ms(self, start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    def _failure(
        self,
        start: float,
        message: str,
        total_rows: int = 0,
        warnings: list[str] | None = None,
    ) -> ImportResult:
        logger.warning("Import rejected: %s", message)
        return ImportResult(
            success=False,
            total_rows=total_rows,
            duration_ms=self._elapsed_ms(start),
            warnings=warnings or [],
            message=message,
        )
