"""
XlsxWriter adapter for styled spreadsheet exports.

XlsxWriter builds the export workbook in memory: a header band of field
paths, one row per entity with alternating shading, per-column style
directives, auto-sized columns and a frozen header row.

Features:
    - Typed cells (numbers, booleans, dates)
    - Column styles: width, font and fill colors, bold, alignment,
      number formats and value-driven font colors
    - Format objects cached per distinct style

Example:
    adapter = XlsxWriterAdapter()
    content = adapter.render(
        accounts,
        ["number", "owner.name", "balance"],
        {"balance": parse_style("format=#,##0.00, color=GREEN|RED")},
    )
"""

import io
import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import xlsxwriter
from xlsxwriter.format import Format
from xlsxwriter.workbook import Workbook
from xlsxwriter.worksheet import Worksheet

from bulkport.adapters.base import ExportWriter, resolve_values, value_to_text
from bulkport.exceptions import RenderError
from bulkport.utils.colors import ColorName, to_css_hex
from bulkport.utils.style_parser import StyleDirective


class _FormatCache:
    """Creates one XlsxWriter Format per distinct set of properties."""

    def __init__(self, workbook: Workbook) -> None:
        self._workbook = workbook
        self._formats: dict[tuple, Format] = {}

    def get(self, properties: dict[str, Any]) -> Format:
        key = tuple(sorted(properties.items()))
        if key not in self._formats:
            self._formats[key] = self._workbook.add_format(properties)
        return self._formats[key]


class XlsxWriterAdapter(ExportWriter):
    """
    Adapter writing entity exports with XlsxWriter.

    Attributes:
        SHEET_NAME: Title of the export worksheet.
        DEFAULT_COLUMN_WIDTH: Minimum auto-sized column width in characters.
        MAX_COLUMN_WIDTH: Maximum auto-sized column width in characters.
        ROW_COLOR: Fill of the first data row and every second one after it.
        ALTERNATE_ROW_COLOR: Fill of the rows in between.
    """

    SHEET_NAME = "Export"
    FORMAT_NAME = "xlsx"
    DEFAULT_COLUMN_WIDTH = 10
    MAX_COLUMN_WIDTH = 50
    HEADER_COLOR = "4F81BD"
    ROW_COLOR = ColorName.WHITE.value
    ALTERNATE_ROW_COLOR = ColorName.LIGHT_GRAY.value
    DATE_FORMAT = "%d/%m/%Y"
    DATETIME_FORMAT = "%d/%m/%Y %H:%M:%S"

    def __init__(self, sheet_name: str | None = None) -> None:
        """
        Initialize the XlsxWriterAdapter.

        Args:
            sheet_name: Worksheet title; defaults to SHEET_NAME.
        """
        self.sheet_name = sheet_name or self.SHEET_NAME

    def _header_properties(self) -> dict[str, Any]:
        return {
            "bold": True,
            "bg_color": to_css_hex(self.HEADER_COLOR),
            "font_color": "white",
            "align": "center",
            "border": 1,
        }

    def _cell_properties(
        self,
        row: int,
        value: Any,
        style: StyleDirective | None,
    ) -> dict[str, Any]:
        """
        Build format properties for one data cell.

        Args:
            row: Row index (0-based, header is 0).
            value: Value about to be written.
            style: Directive of the column, if any.
        """
        fill = self.ROW_COLOR if row % 2 == 1 else self.ALTERNATE_ROW_COLOR
        properties: dict[str, Any] = {}

        if style is not None:
            fill = style.fill_color or fill
            if style.bold:
                properties["bold"] = True
            if style.align:
                properties["align"] = style.align.lower()
            if style.number_format:
                properties["num_format"] = self._excel_number_format(value, style.number_format)
            font_color = style.font_color_for(value)
            if font_color:
                properties["font_color"] = to_css_hex(font_color)

        properties["bg_color"] = to_css_hex(fill)
        return properties

    def _excel_number_format(self, value: Any, pattern: str) -> str:
        # Date patterns are written Java-style (dd/MM/yyyy); Excel wants lowercase.
        if isinstance(value, (date, datetime)):
            return pattern.lower()
        return pattern

    def _write_cell(
        self,
        worksheet: Worksheet,
        row: int,
        col: int,
        value: Any,
        cell_format: Format | None,
        has_number_format: bool = False,
    ) -> None:
        """
        Write a value to a cell with appropriate type handling.

        Dates are written as real dates only when the column has a
        ``format`` directive; otherwise they are written as text in the
        fixed dd/mm/yyyy (hh:mm:ss) patterns.

        Args:
            worksheet: The worksheet to write to.
            row: Row index (0-based).
            col: Column index (0-based).
            value: Value to write.
            cell_format: Optional format to apply.
            has_number_format: Whether the column declares a number format.
        """
        if value is None:
            worksheet.write_blank(row, col, None, cell_format)
        elif isinstance(value, bool):
            worksheet.write_boolean(row, col, value, cell_format)
        elif isinstance(value, (int, float, Decimal)):
            number = float(value)
            if math.isfinite(number):
                worksheet.write_number(row, col, number, cell_format)
            else:
                worksheet.write_string(row, col, str(value), cell_format)
        elif isinstance(value, datetime):
            if has_number_format:
                worksheet.write_datetime(row, col, value.replace(tzinfo=None), cell_format)
            else:
                worksheet.write_string(row, col, value.strftime(self.DATETIME_FORMAT), cell_format)
        elif isinstance(value, date):
            if has_number_format:
                worksheet.write_datetime(row, col, value, cell_format)
            else:
                worksheet.write_string(row, col, value.strftime(self.DATE_FORMAT), cell_format)
        elif isinstance(value, Enum):
            worksheet.write_string(row, col, str(value.value), cell_format)
        else:
            worksheet.write_string(row, col, str(value), cell_format)

    def _display_width(self, value: Any) -> int:
        return min(len(value_to_text(value)) + 2, self.MAX_COLUMN_WIDTH)

    def _write_sheet(
        self,
        workbook: Workbook,
        entities: Iterable[Any],
        fields: Sequence[str],
        styles: Mapping[str, StyleDirective],
    ) -> None:
        worksheet = workbook.add_worksheet(self.sheet_name)
        formats = _FormatCache(workbook)

        header_format = formats.get(self._header_properties())
        widths = [max(self.DEFAULT_COLUMN_WIDTH, self._display_width(path)) for path in fields]
        for col_idx, path in enumerate(fields):
            worksheet.write_string(0, col_idx, path, header_format)

        column_styles = [styles.get(path) for path in fields]
        for row_idx, entity in enumerate(entities, start=1):
            for col_idx, value in enumerate(resolve_values(entity, fields)):
                style = column_styles[col_idx]
                cell_format = formats.get(self._cell_properties(row_idx, value, style))
                self._write_cell(
                    worksheet,
                    row_idx,
                    col_idx,
                    value,
                    cell_format,
                    has_number_format=bool(style and style.number_format),
                )
                widths[col_idx] = max(widths[col_idx], self._display_width(value))

        for col_idx, width in enumerate(widths):
            style = column_styles[col_idx]
            explicit = style.width if style is not None else None
            worksheet.set_column(col_idx, col_idx, explicit or width)

        worksheet.freeze_panes(1, 0)

    def render(
        self,
        entities: Iterable[Any],
        fields: Sequence[str],
        styles: Mapping[str, StyleDirective] | None = None,
    ) -> bytes:
        """
        Write entities to an in-memory .xlsx workbook.

        Row 1 holds the field paths as a styled header band; each following
        row holds one entity's values. An export with no entities still
        contains the header row.

        Args:
            entities: Entities to export, in order.
            fields: Field paths, one per column.
            styles: Field path to style directive.

        Returns:
            The .xlsx file content.

        Raises:
            RenderError: If the workbook cannot be written.
        """
        buffer = io.BytesIO()
        try:
            with xlsxwriter.Workbook(buffer, {"in_memory": True}) as workbook:
                self._write_sheet(workbook, entities, fields, styles or {})
        except Exception as e:
            raise RenderError(self.FORMAT_NAME, "export", str(e)) from e

        return buffer.getvalue()
