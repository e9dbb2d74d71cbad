"""
Parser for per-column style directives.

A directive line has the form ``<column>: key=value, key=value``. Keys
recognised by the writers are:

    width    integer column width in characters
    color    font color name, or ``A|B`` (A for true / non-negative values,
             B for false / negative values)
    bg       fill color name
    bold     true / false
    align    LEFT, CENTER or RIGHT
    format   number or date pattern, e.g. ``#,##0.00`` or ``dd/mm/yyyy``
    mapping  ``value:COLOR`` pairs selecting the font color from the cell value

Unknown keys are kept in the parsed directive and ignored by the writers.
Fragments without ``=`` are dropped, except that ``format`` and ``mapping``
values may themselves contain commas, so a following fragment that reads as
a continuation of such a value is joined back onto it.

Example:
    >>> column, style = parse_column_style(
    ...     "balance: width=15, align=RIGHT, format=#,##0.00, color=GREEN|RED"
    ... )
    >>> column, dict(style)
    ('balance', {'width': '15', 'align': 'RIGHT', 'format': '#,##0.00', 'color': 'GREEN|RED'})
"""

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from bulkport.utils.colors import resolve_color

logger = logging.getLogger(__name__)

RECOGNIZED_KEYS = frozenset({"width", "color", "bg", "bold", "align", "format", "mapping"})
ALIGNMENTS = ("LEFT", "CENTER", "RIGHT")

_TRUE_VALUES = frozenset({"true", "yes", "1", "on"})
# A bare fragment continues a number pattern when it starts like one ("##0.00").
_FORMAT_CONTINUATION = re.compile(r"^[#0?.%]")


class StyleDirective(Mapping[str, str]):
    """
    Immutable mapping of style keys to their raw string values.

    Typed accessors interpret the recognised keys; an absent or invalid
    value yields None so the writer keeps its own default.
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"StyleDirective({self._values!r})"

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._values.items())))

    @property
    def width(self) -> int | None:
        raw = self._values.get("width")
        if raw is None:
            return None
        try:
            width = int(raw)
        except ValueError:
            logger.warning("Ignoring invalid width %r in style directive", raw)
            return None
        if width <= 0:
            logger.warning("Ignoring non-positive width %r in style directive", raw)
            return None
        return width

    @property
    def bold(self) -> bool:
        return self._values.get("bold", "").strip().lower() in _TRUE_VALUES

    @property
    def align(self) -> str | None:
        raw = self._values.get("align")
        if raw is None:
            return None
        value = raw.strip().upper()
        if value not in ALIGNMENTS:
            logger.warning("Ignoring unknown alignment %r in style directive", raw)
            return None
        return value

    @property
    def number_format(self) -> str | None:
        return self._values.get("format") or None

    @property
    def fill_color(self) -> str | None:
        """RGB hex of the ``bg`` color, if it names a known color."""
        return resolve_color(self._values.get("bg"))

    @property
    def value_colors(self) -> dict[str, str]:
        """
        Parse the ``mapping`` key into a casefolded value -> RGB hex dict.

        Pairs whose color is unknown are skipped.
        """
        raw = self._values.get("mapping")
        if not raw:
            return {}

        colors: dict[str, str] = {}
        for pair in raw.split(","):
            value, sep, color = pair.rpartition(":")
            if not sep:
                continue
            rgb = resolve_color(color)
            if rgb is None:
                logger.warning("Ignoring unknown color %r in value mapping", color.strip())
                continue
            colors[value.strip().casefold()] = rgb
        return colors

    def font_color_for(self, value: Any) -> str | None:
        """
        Pick the font color for a concrete cell value.

        A ``mapping`` entry matching the value wins over ``color``. For
        ``color=A|B`` the first color applies to true and non-negative
        values, the second to false and negative ones.

        Args:
            value: The value about to be written to the cell.

        Returns:
            RGB hex string, or None to keep the default font color.
        """
        mapped = self.value_colors
        if mapped and value is not None:
            key = _mapping_key(value)
            if key in mapped:
                return mapped[key]

        raw = self._values.get("color")
        if not raw:
            return None
        if "|" not in raw:
            return resolve_color(raw)

        positive, _, negative = raw.partition("|")
        if value is False:
            return resolve_color(negative)
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool) and value < 0:
            return resolve_color(negative)
        return resolve_color(positive)


def _mapping_key(value: Any) -> str:
    # Matches the text the writers put in the cell.
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).casefold()


def _is_continuation(key: str, fragment: str) -> bool:
    if key == "format":
        return bool(_FORMAT_CONTINUATION.match(fragment))
    if key == "mapping":
        return ":" in fragment
    return False


def parse_style(kv_list: str) -> StyleDirective:
    """
    Parse a comma separated ``key=value`` list into a StyleDirective.

    Keys are lowercased; whitespace around keys and values is ignored.

    Args:
        kv_list: The part of a directive line after the column name.

    Returns:
        The parsed directive, possibly empty.
    """
    values: dict[str, str] = {}
    last_key: str | None = None

    for fragment in kv_list.split(","):
        fragment = fragment.strip()
        if not fragment:
            continue

        key, sep, value = fragment.partition("=")
        if not sep:
            if last_key is not None and _is_continuation(last_key, fragment):
                values[last_key] = f"{values[last_key]},{fragment}"
            else:
                logger.debug("Dropping style fragment without '=': %r", fragment)
            continue

        key = key.strip().lower()
        if not key:
            logger.debug("Dropping style fragment without a key: %r", fragment)
            last_key = None
            continue

        values[key] = value.strip()
        last_key = key

    return StyleDirective(values)


def parse_column_style(line: str) -> tuple[str, StyleDirective] | None:
    """
    Parse one ``column: key=value, ...`` directive line.

    Returns:
        A ``(column, directive)`` tuple, or None when the line has no colon
        or an empty column name.
    """
    column, sep, kv_list = line.partition(":")
    column = column.strip()
    if not sep or not column:
        return None
    return column, parse_style(kv_list)


def parse_column_styles(lines: str | Iterable[str]) -> dict[str, StyleDirective]:
    """
    Parse several directive lines into a column -> directive mapping.

    ``lines`` may be an iterable of lines or a single newline separated
    string. Lines that do not parse are skipped; a later line for the same
    column replaces an earlier one.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    styles: dict[str, StyleDirective] = {}
    for line in lines:
        parsed = parse_column_style(line)
        if parsed is None:
            continue
        column, directive = parsed
        styles[column] = directive
    return styles
