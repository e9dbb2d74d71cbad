"""
Dotted field-path access on nested entity graphs.

Paths such as ``"address.city"`` are resolved one segment at a time,
reading mapping keys from mappings and attributes from everything else.
Reads are lenient: exports must not abort because one field is unreadable
on one record, so a failing lookup is logged and yields None.
"""

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

logger = logging.getLogger(__name__)

_MISSING = object()


def split_path(path: str) -> list[str]:
    """Split a dotted path into its non-empty, stripped segments."""
    return [segment.strip() for segment in path.split(".") if segment.strip()]


def _read_segment(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        value = obj.get(name, _MISSING)
    else:
        value = getattr(obj, name, _MISSING)
    if value is _MISSING:
        raise AttributeError(f"{type(obj).__name__} has no field '{name}'")
    return value


def get_field_value(obj: Any, path: str) -> Any:
    """
    Read the value at ``path`` from ``obj``.

    Args:
        obj: Root object (model instance, dataclass, mapping, ...).
        path: Dot separated field names, e.g. ``"customer.address.city"``.

    Returns:
        The resolved value, or None when any intermediate value is None or
        a field cannot be read.

    Example:
        >>> get_field_value({"address": {"city": "Lyon"}}, "address.city")
        'Lyon'
    """
    current = obj
    for segment in split_path(path):
        if current is None:
            return None
        try:
            current = _read_segment(current, segment)
        except Exception as e:
            logger.warning("Cannot read field path '%s' on %s: %s", path, type(obj).__name__, e)
            return None
    return current


def set_field_value(obj: Any, path: str, value: Any) -> None:
    """
    Assign ``value`` at ``path`` on ``obj``.

    Intermediate objects are traversed with the same rules as
    get_field_value; the last segment is assigned as a mapping key or an
    attribute.

    Raises:
        ValueError: If the path is empty or an intermediate value is None.
        AttributeError: If an intermediate field does not exist.
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("Field path must not be empty")

    current = obj
    for index, segment in enumerate(segments[:-1]):
        current = _read_segment(current, segment)
        if current is None:
            traversed = ".".join(segments[: index + 1])
            raise ValueError(f"Cannot set '{path}': '{traversed}' is None")

    last = segments[-1]
    if isinstance(current, MutableMapping):
        current[last] = value
    else:
        setattr(current, last, value)
