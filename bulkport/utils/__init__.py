"""
Shared helpers: color lookup, style directive parsing, field-path access.
"""

from bulkport.utils.colors import ColorName, resolve_color
from bulkport.utils.field_path import get_field_value, set_field_value
from bulkport.utils.style_parser import (
    StyleDirective,
    parse_column_style,
    parse_column_styles,
    parse_style,
)

__all__ = [
    "ColorName",
    "resolve_color",
    "get_field_value",
    "set_field_value",
    "StyleDirective",
    "parse_style",
    "parse_column_style",
    "parse_column_styles",
]
