"""
Openpyxl adapter for .xlsx reading and import template writing.

Openpyxl is used where the other engines fall short: it can read a
workbook twice to get both cached formula results and the formulas
themselves, and it can attach data validation lists to cells when
writing templates.

Supported formats:
    - .xlsx (Excel 2007+)
    - .xlsm (Excel Macro-Enabled)

Example:
    adapter = OpenpyxlAdapter()
    rows = adapter.parse(upload_bytes)
    template = adapter.render_template(
        ["email", "status"],
        ["phone"],
        example_customer,
        {"status": ["ACTIVE", "INACTIVE"]},
    )
"""

import io
import logging
from collections.abc import Iterator, Mapping, Sequence
from itertools import zip_longest
from typing import Any

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import Cell
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.worksheet import Worksheet

from bulkport.adapters.base import (
    TabularReader,
    TemplateWriter,
    build_table,
    clean_header,
    mark_required,
    resolve_values,
    value_to_text,
)
from bulkport.exceptions import ParseError, RenderError
from bulkport.models.row import ParsedTable

logger = logging.getLogger(__name__)


class OpenpyxlAdapter(TabularReader, TemplateWriter):
    """
    Reads .xlsx workbooks and writes import templates with dropdowns.

    Only the first worksheet of a workbook is read.

    Attributes:
        SUPPORTED_EXTENSIONS: Tuple of supported file extensions.
        TEMPLATE_SHEET: Title of the template worksheet.
        LISTS_SHEET: Title of the hidden sheet holding long option lists.
        DROPDOWN_FIRST_ROW: First data row covered by a dropdown.
        DROPDOWN_LAST_ROW: Last data row covered by a dropdown.
        MAX_PROMPT_LENGTH: Longest prompt or error text Excel accepts.
        MAX_INLINE_LIST_LENGTH: Longest inline list formula Excel accepts.
    """

    SUPPORTED_EXTENSIONS = (".xlsx", ".xlsm")
    FORMAT_NAME = "xlsx"
    TEMPLATE_SHEET = "Import"
    LISTS_SHEET = "Lists"
    HEADER_COLOR = "4F81BD"
    MIN_COLUMN_WIDTH = 12
    DROPDOWN_FIRST_ROW = 2
    DROPDOWN_LAST_ROW = 501
    PROMPT_OPTION_LIMIT = 10
    MAX_PROMPT_LENGTH = 250
    MAX_TITLE_LENGTH = 32
    MAX_INLINE_LIST_LENGTH = 255

    def _load(self, content: bytes, data_only: bool) -> Workbook:
        """
        Load a workbook from bytes.

        Args:
            content: Raw file content.
            data_only: If True, read cached values instead of formulas.

        Raises:
            ParseError: If openpyxl cannot open the container.
        """
        try:
            return load_workbook(io.BytesIO(content), data_only=data_only)
        except Exception as e:
            raise ParseError(self.FORMAT_NAME, f"cannot open workbook: {e}") from e

    def _resolve_cell(self, value: Any, formula: Any) -> Any:
        """
        Pick what a cell reads as.

        The cached result of a formula wins; a formula cell without a
        cached result (a file never opened in Excel) falls back to the
        formula text.
        """
        if value is not None or formula is None:
            return value
        return getattr(formula, "text", formula)

    def _iter_cells(self, values: Worksheet, formulas: Worksheet) -> Iterator[list[Any]]:
        for value_row, formula_row in zip_longest(
            values.iter_rows(values_only=True),
            formulas.iter_rows(values_only=True),
            fillvalue=(),
        ):
            yield [
                self._resolve_cell(value, formula)
                for value, formula in zip_longest(value_row, formula_row)
            ]

    def read_table(self, content: bytes) -> ParsedTable:
        """
        Read the first worksheet of an .xlsx file.

        Args:
            content: Raw file content.

        Returns:
            ParsedTable for the first worksheet.

        Raises:
            ParseError: If the content is empty, is not a workbook, or its
                first sheet has no header row.
        """
        if not content:
            raise ParseError(self.FORMAT_NAME, "file is empty")

        values_book = self._load(content, data_only=True)
        formulas_book = self._load(content, data_only=False)
        try:
            if not values_book.worksheets:
                raise ParseError(self.FORMAT_NAME, "workbook has no worksheet")
            return build_table(
                self._iter_cells(values_book.worksheets[0], formulas_book.worksheets[0]),
                self.FORMAT_NAME,
            )
        finally:
            values_book.close()
            formulas_book.close()

    def _style_header(self, cell: Cell) -> None:
        side = Side(style="thin")
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(start_color=self.HEADER_COLOR, end_color=self.HEADER_COLOR, fill_type="solid")
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = Border(left=side, right=side, top=side, bottom=side)

    def _set_text(self, cell: Cell, text: str) -> None:
        cell.value = text
        # Keep text such as "=1+1" from being stored as a formula.
        if text.startswith("="):
            cell.data_type = "s"

    def _truncate(self, text: str, limit: int) -> str:
        if len(text) <= limit:
            return text
        return text[: limit - 3] + "..."

    def _build_prompt(self, options: Sequence[str]) -> str:
        """
        List the first options for the input prompt of a dropdown.

        Example:
            "A, B, C, D, E, F, G, H, I, J ... (+3 more)"
        """
        shown = ", ".join(options[: self.PROMPT_OPTION_LIMIT])
        hidden = len(options) - self.PROMPT_OPTION_LIMIT
        if hidden > 0:
            shown += f" ... (+{hidden} more)"
        return self._truncate(shown, self.MAX_PROMPT_LENGTH)

    def _needs_list_sheet(self, options: Sequence[str]) -> bool:
        inline = '"' + ",".join(options) + '"'
        if len(inline) > self.MAX_INLINE_LIST_LENGTH:
            return True
        return any("," in option or '"' in option for option in options)

    def _list_formula(self, workbook: Workbook, list_index: int, options: Sequence[str]) -> str:
        """
        Write options to a column of the hidden lists sheet.

        Returns:
            An absolute range reference usable as a list validation source.
        """
        if self.LISTS_SHEET in workbook.sheetnames:
            lists = workbook[self.LISTS_SHEET]
        else:
            lists = workbook.create_sheet(self.LISTS_SHEET)
            lists.sheet_state = "hidden"

        letter = get_column_letter(list_index)
        for offset, option in enumerate(options, start=1):
            self._set_text(lists.cell(row=offset, column=list_index), option)
        return f"{self.LISTS_SHEET}!${letter}$1:${letter}${len(options)}"

    def _add_dropdown(
        self,
        workbook: Workbook,
        worksheet: Worksheet,
        column_index: int,
        column: str,
        options: Sequence[str],
        list_index: int,
    ) -> bool:
        """
        Restrict a template column to a list of values.

        Returns:
            True when the options were written to the hidden lists sheet.
        """
        on_list_sheet = self._needs_list_sheet(options)
        if on_list_sheet:
            formula = self._list_formula(workbook, list_index, options)
        else:
            formula = '"' + ",".join(options) + '"'

        validation = DataValidation(
            type="list",
            formula1=formula,
            allow_blank=True,
            showErrorMessage=True,
            showInputMessage=True,
            errorStyle="stop",
            errorTitle="Invalid value",
            error=self._truncate(
                f"Invalid value for '{column}'. Choose one of the {len(options)} allowed options.",
                self.MAX_PROMPT_LENGTH,
            ),
            promptTitle=self._truncate(f"Options {column}", self.MAX_TITLE_LENGTH),
            prompt=self._build_prompt(options),
        )
        letter = get_column_letter(column_index)
        validation.add(f"{letter}{self.DROPDOWN_FIRST_ROW}:{letter}{self.DROPDOWN_LAST_ROW}")
        worksheet.add_data_validation(validation)
        return on_list_sheet

    def render_template(
        self,
        required_columns: Sequence[str],
        optional_columns: Sequence[str],
        example: Any,
        options: Mapping[str, Sequence[str]] | None = None,
    ) -> bytes:
        """
        Write an import template workbook.

        Row 1 holds the headers (required ones marked with " *"), row 2 the
        example entity's values as text. Columns with options get a
        dropdown over rows 2 to 501; blank cells stay allowed.

        Args:
            required_columns: Columns every import file must contain.
            optional_columns: Columns an import file may contain.
            example: Entity whose values fill row 2.
            options: Column name to allowed values.

        Returns:
            The .xlsx file content.

        Raises:
            RenderError: If the workbook cannot be built or saved.
        """
        columns = [*required_columns, *optional_columns]
        headers = [mark_required(c) for c in required_columns] + list(optional_columns)
        options_by_key = {
            clean_header(name).casefold(): [str(value) for value in values]
            for name, values in (options or {}).items()
            if values
        }

        try:
            workbook = Workbook()
            worksheet = workbook.active
            worksheet.title = self.TEMPLATE_SHEET

            for col_idx, header in enumerate(headers, start=1):
                cell = worksheet.cell(row=1, column=col_idx, value=header)
                self._style_header(cell)
                letter = get_column_letter(col_idx)
                worksheet.column_dimensions[letter].width = max(self.MIN_COLUMN_WIDTH, len(header) + 4)

            for col_idx, value in enumerate(resolve_values(example, columns), start=1):
                text = value_to_text(value)
                if text:
                    self._set_text(worksheet.cell(row=2, column=col_idx), text)

            list_index = 1
            for col_idx, column in enumerate(columns, start=1):
                column_options = options_by_key.get(column.casefold())
                if not column_options:
                    continue
                if self._add_dropdown(workbook, worksheet, col_idx, column, column_options, list_index):
                    list_index += 1

            worksheet.freeze_panes = "A2"

            buffer = io.BytesIO()
            workbook.save(buffer)
            workbook.close()
        except Exception as e:
            raise RenderError(self.FORMAT_NAME, "write template", str(e)) from e

        logger.debug("Rendered xlsx template with %d columns", len(columns))
        return buffer.getvalue()
