"""
Symbolic color names used by style directives.

Style directives refer to colors by name (``color=GREEN``, ``bg=LIGHT_GRAY``).
This module maps those names to RGB hex strings understood by both
spreadsheet writers. Lookup never fails: an unknown name resolves to None
and the writer falls back to its neutral default.
"""

from enum import Enum


class ColorName(str, Enum):
    """
    Closed set of color names accepted in style directives.

    The value of each member is the RGB hex string without a leading "#".
    GRAY/GREY and LIGHT_GRAY/LIGHT_GREY are aliases of the same color.
    """

    RED = "FF0000"
    GREEN = "008000"
    BLUE = "0000FF"
    YELLOW = "FFFF00"
    ORANGE = "FF6600"
    PURPLE = "800080"
    GRAY = "808080"
    GREY = "808080"
    WHITE = "FFFFFF"
    BLACK = "000000"
    LIGHT_GREEN = "CCFFCC"
    LIGHT_RED = "FF99CC"
    LIGHT_BLUE = "3366FF"
    LIGHT_YELLOW = "FFFF99"
    LIGHT_ORANGE = "FF9900"
    LIGHT_GRAY = "C0C0C0"
    LIGHT_GREY = "C0C0C0"


def resolve_color(name: str | None) -> str | None:
    """
    Resolve a symbolic color name to its RGB hex string.

    Matching ignores case and surrounding whitespace.

    Args:
        name: Color name such as "red" or "LIGHT_BLUE".

    Returns:
        Hex string like "FF0000", or None when the name is unknown or empty.

    Example:
        >>> resolve_color("light_green")
        'CCFFCC'
        >>> resolve_color("teal") is None
        True
    """
    if not name:
        return None
    member = ColorName.__members__.get(name.strip().upper())
    return member.value if member is not None else None


def to_css_hex(rgb: str) -> str:
    """Return ``rgb`` in the "#RRGGBB" form XlsxWriter formats expect."""
    return f"#{rgb}"


def to_argb(rgb: str) -> str:
    """Return ``rgb`` in the opaque "FFRRGGBB" form openpyxl styles expect."""
    return f"FF{rgb}"
