"""
Calamine adapter for reading legacy and binary spreadsheet formats.

python-calamine is a Rust-based reader that handles the formats openpyxl
cannot open. Formula cells read as their cached result.

Supported formats:
    - .xls (Excel 97-2003)
    - .xlsb (Excel Binary)
    - .ods (OpenDocument Spreadsheet)

Example:
    adapter = CalamineAdapter()
    rows = adapter.parse(Path("legacy.xls").read_bytes())
"""

import io
from datetime import timedelta
from typing import Any

from python_calamine import CalamineWorkbook

from bulkport.adapters.base import TabularReader, build_table
from bulkport.exceptions import ParseError
from bulkport.models.row import ParsedTable


class CalamineAdapter(TabularReader):
    """
    Reads the first sheet of .xls, .xlsb and .ods files.

    Attributes:
        SUPPORTED_EXTENSIONS: Tuple of supported file extensions.
    """

    SUPPORTED_EXTENSIONS = (".xls", ".xlsb", ".ods")
    FORMAT_NAME = "spreadsheet"

    def _normalize_cell_value(self, value: Any) -> Any:
        """
        Normalize a cell value from calamine to Python types.

        Calamine reports empty cells as "" and durations as timedelta.
        """
        if value == "":
            return None
        if isinstance(value, timedelta):
            return str(value)
        return value

    def read_table(self, content: bytes) -> ParsedTable:
        """
        Read the first sheet of a spreadsheet file.

        Args:
            content: Raw file content.

        Returns:
            ParsedTable for the first sheet.

        Raises:
            ParseError: If the content is empty or calamine cannot read it.
        """
        if not content:
            raise ParseError(self.FORMAT_NAME, "file is empty")

        try:
            workbook = CalamineWorkbook.from_filelike(io.BytesIO(content))
            if not workbook.sheet_names:
                raise ParseError(self.FORMAT_NAME, "workbook has no sheet")
            raw_rows = workbook.get_sheet_by_index(0).to_python(skip_empty_area=False)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(self.FORMAT_NAME, f"cannot open workbook: {e}") from e

        return build_table(
            ([self._normalize_cell_value(value) for value in row] for row in raw_rows),
            self.FORMAT_NAME,
        )
