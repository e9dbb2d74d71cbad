"""
CSV adapter for delimited-text import, export and templates.

Reading uses the standard library csv module and accepts UTF-8 with or
without a byte order mark. Writing joins values with a bare comma by
default, without quoting: a value containing a comma, quote or newline
shifts the columns of that line. Pass ``quote_values=True`` to get
RFC 4180 minimal quoting instead.

Example:
    adapter = CsvAdapter()
    rows = adapter.parse(b"email*,name\\njane@example.com,Jane\\n")
    content = adapter.render(customers, ["email", "name"])
"""

import csv
import io
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from bulkport.adapters.base import (
    ExportWriter,
    TabularReader,
    TemplateWriter,
    build_table,
    mark_required,
    resolve_values,
    value_to_text,
)
from bulkport.exceptions import ParseError, RenderError
from bulkport.models.row import ParsedTable
from bulkport.utils.style_parser import StyleDirective


class CsvAdapter(TabularReader, ExportWriter, TemplateWriter):
    """
    Reads and writes comma separated files.

    Attributes:
        SUPPORTED_EXTENSIONS: Extensions dispatched to this adapter.
        quote_values: Whether written values are quoted when needed.
    """

    SUPPORTED_EXTENSIONS = (".csv",)
    FORMAT_NAME = "csv"
    ENCODING = "utf-8"
    LINE_TERMINATOR = "\n"

    def __init__(self, quote_values: bool = False) -> None:
        """
        Initialize the CsvAdapter.

        Args:
            quote_values: Quote values holding a comma, quote or line break
                on output. Off by default so output stays a literal join.
        """
        self.quote_values = quote_values

    def read_table(self, content: bytes) -> ParsedTable:
        """
        Parse CSV bytes.

        Args:
            content: Raw file content.

        Returns:
            ParsedTable for the file.

        Raises:
            ParseError: If the content is not UTF-8, is malformed CSV, or has
                no header row.
        """
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(self.FORMAT_NAME, f"content is not valid UTF-8: {e}") from e

        try:
            raw_rows = list(csv.reader(io.StringIO(text, newline="")))
        except csv.Error as e:
            raise ParseError(self.FORMAT_NAME, str(e)) from e

        return build_table(raw_rows, self.FORMAT_NAME)

    def _format_line(self, values: Sequence[str]) -> str:
        if not self.quote_values:
            return ",".join(values) + self.LINE_TERMINATOR
        buffer = io.StringIO()
        csv.writer(buffer, lineterminator=self.LINE_TERMINATOR).writerow(values)
        return buffer.getvalue()

    def _encode(self, lines: Iterable[str], operation: str) -> bytes:
        try:
            return "".join(lines).encode(self.ENCODING)
        except (UnicodeEncodeError, csv.Error) as e:
            raise RenderError(self.FORMAT_NAME, operation, str(e)) from e

    def render(
        self,
        entities: Iterable[Any],
        fields: Sequence[str],
        styles: Mapping[str, StyleDirective] | None = None,
    ) -> bytes:
        """
        Write one header line of field paths and one line per entity.

        Style directives have no effect on delimited output.
        """
        lines = [self._format_line(list(fields))]
        for entity in entities:
            lines.append(self._format_line([value_to_text(v) for v in resolve_values(entity, fields)]))
        return self._encode(lines, "export")

    def render_template(
        self,
        required_columns: Sequence[str],
        optional_columns: Sequence[str],
        example: Any,
        options: Mapping[str, Sequence[str]] | None = None,
    ) -> bytes:
        """
        Write the template header line and one example line.

        Required columns carry the " *" marker. Dropdown options cannot be
        expressed in CSV and are ignored.
        """
        columns = [*required_columns, *optional_columns]
        header = [mark_required(c) for c in required_columns] + list(optional_columns)
        example_values = [value_to_text(v) for v in resolve_values(example, columns)]
        lines = [self._format_line(header), self._format_line(example_values)]
        return self._encode(lines, "template")
