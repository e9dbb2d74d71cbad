"""
Row and parsed-table types produced by tabular readers.

A Row maps cleaned column names to raw cell text. It never holds
converted values: turning text into typed fields is the mapper's job.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


class Row(Mapping[str, str | None]):
    """
    Immutable, ordered mapping of column name to raw cell text.

    Attributes:
        source_row: 1-based physical line number of the row in the source
            file (the header is line 1). Blank lines skipped by the reader
            still count towards this number.
    """

    __slots__ = ("_cells", "source_row")

    def __init__(self, cells: Mapping[str, str | None], source_row: int = 0) -> None:
        self._cells = MappingProxyType(dict(cells))
        self.source_row = source_row

    def __getitem__(self, key: str) -> str | None:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"Row({dict(self._cells)!r}, source_row={self.source_row})"

    def rename(self, names: Mapping[str, str]) -> "Row":
        """Return a copy with keys replaced through ``names`` (missing keys kept)."""
        return Row(
            {names.get(key, key): value for key, value in self._cells.items()},
            source_row=self.source_row,
        )


@dataclass(frozen=True)
class ParsedTable:
    """
    Everything a reader extracted from one file.

    Attributes:
        headers: Cleaned header names in column order.
        rows: Non-blank data rows in file order.
        skipped_blank_rows: Number of data lines skipped because every cell was blank.
    """

    headers: tuple[str, ...]
    rows: tuple[Row, ...] = field(default_factory=tuple)
    skipped_blank_rows: int = 0
