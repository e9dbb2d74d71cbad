"""
Shared reader/writer contracts and cell conversion rules.

Every reader turns a file into a ParsedTable with the same rules whatever
the container format:

    - the first row holds the headers; the required marker "*" and
      surrounding whitespace are removed, blank and duplicate headers are
      dropped (columns keep their position),
    - data rows whose cells are all blank are skipped and counted,
    - cell values become trimmed text: whole numbers lose their decimal
      point, dates read as dd/mm/yyyy, booleans as "true"/"false".

Writers share the text rendering used by delimited output and templates.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any

from bulkport.exceptions import ParseError
from bulkport.models.row import ParsedTable, Row
from bulkport.utils.field_path import get_field_value
from bulkport.utils.style_parser import StyleDirective

logger = logging.getLogger(__name__)

REQUIRED_MARKER = "*"
READ_DATE_FORMAT = "%d/%m/%Y"
WRITE_DATE_FORMAT = "%d/%m/%Y"
WRITE_DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"


def clean_header(value: Any) -> str:
    """
    Normalize a header cell: drop the required marker and trim.

    ``"Email *"`` and ``"email*"`` both clean to a name without the marker;
    case is preserved and matched case-insensitively later on.
    """
    if value is None:
        return ""
    return str(value).replace(REQUIRED_MARKER, "").strip()


def mark_required(column: str) -> str:
    """Header text for a required template column."""
    return f"{column} {REQUIRED_MARKER}"


def cell_to_text(value: Any) -> str | None:
    """
    Convert a typed cell value read from a file to row text.

    Returns:
        Trimmed text, or None for an empty cell.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.strftime(READ_DATE_FORMAT)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value).strip()
    return str(value).strip()


def value_to_text(value: Any) -> str:
    """
    Render an entity value as text for delimited output and templates.

    None becomes an empty string, booleans are lowercase, datetimes use
    dd/mm/yyyy hh:mm:ss and dates dd/mm/yyyy.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime(WRITE_DATETIME_FORMAT)
    if isinstance(value, date):
        return value.strftime(WRITE_DATE_FORMAT)
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def is_blank(text: str | None) -> bool:
    return text is None or text == ""


def build_table(raw_rows: Iterable[Sequence[Any]], source_format: str) -> ParsedTable:
    """
    Apply the header and row rules to raw cell rows.

    Args:
        raw_rows: Rows of typed cell values, header row first.
        source_format: Format name used in error messages.

    Returns:
        ParsedTable with cleaned headers and non-blank rows.

    Raises:
        ParseError: If there is no row at all or no usable header.
    """
    iterator = iter(raw_rows)
    try:
        header_cells = next(iterator)
    except StopIteration:
        raise ParseError(source_format, "file is empty") from None

    columns: list[tuple[int, str]] = []
    seen: set[str] = set()
    for position, cell in enumerate(header_cells):
        name = clean_header(cell_to_text(cell))
        if not name:
            continue
        if name.casefold() in seen:
            logger.warning("Dropping duplicate header '%s' in column %d", name, position + 1)
            continue
        seen.add(name.casefold())
        columns.append((position, name))

    if not columns:
        raise ParseError(source_format, "header row has no column names")

    rows: list[Row] = []
    skipped = 0
    for source_row, cells in enumerate(iterator, start=2):
        texts = [cell_to_text(cell) for cell in cells]
        if all(is_blank(text) for text in texts):
            skipped += 1
            continue
        values = {name: texts[position] for position, name in columns if position < len(texts)}
        rows.append(Row(values, source_row=source_row))

    logger.debug(
        "Parsed %d rows from %s file (%d blank rows skipped)",
        len(rows),
        source_format,
        skipped,
    )
    return ParsedTable(
        headers=tuple(name for _, name in columns),
        rows=tuple(rows),
        skipped_blank_rows=skipped,
    )


def resolve_values(entity: Any, fields: Sequence[str]) -> list[Any]:
    """Resolve every field path on ``entity``, in order."""
    return [get_field_value(entity, path) for path in fields]


class TabularReader(ABC):
    """
    Reads one family of file formats into rows.

    Attributes:
        SUPPORTED_EXTENSIONS: Lowercase file extensions handled by the reader.
        FORMAT_NAME: Short format name used in messages.
    """

    SUPPORTED_EXTENSIONS: tuple[str, ...] = ()
    FORMAT_NAME = "tabular"

    def supports(self, filename: str | None) -> bool:
        """Whether ``filename`` has an extension this reader handles."""
        if not filename:
            return False
        return PurePath(filename).suffix.lower() in self.SUPPORTED_EXTENSIONS

    @abstractmethod
    def read_table(self, content: bytes) -> ParsedTable:
        """
        Read file bytes into a ParsedTable.

        Raises:
            ParseError: If the content is empty or cannot be read.
        """

    def parse(self, content: bytes) -> list[Row]:
        """Read file bytes into rows, dropping table metadata."""
        return list(self.read_table(content).rows)


class ExportWriter(ABC):
    """Renders entities as a file, one row per entity."""

    @abstractmethod
    def render(
        self,
        entities: Iterable[Any],
        fields: Sequence[str],
        styles: Mapping[str, StyleDirective] | None = None,
    ) -> bytes:
        """
        Raises:
            RenderError: If serialization fails.
        """


class TemplateWriter(ABC):
    """Renders an import template: header row plus one example row."""

    @abstractmethod
    def render_template(
        self,
        required_columns: Sequence[str],
        optional_columns: Sequence[str],
        example: Any,
        options: Mapping[str, Sequence[str]] | None = None,
    ) -> bytes:
        """
        Raises:
            RenderError: If serialization fails.
        """
