"""Dotted-path access into nested mappings and lists.

Usage:
    data = {"address": {"city": "Cape Town"}, "tags": ["a", "b"]}
    get_path(data, "address.city")       # "Cape Town"
    get_path(data, "tags.1")             # "b"
    get_path(data, "missing", "n/a")     # "n/a"
    set_path(data, "address.zip", "8001")
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any

_MISSING = object()


def split_path(path: str | Sequence[str]) -> list[str]:
    """Split a dotted path into its segments.

    Args:
        path: Dotted path string, or an already split sequence of segments.

    Returns:
        List of path segments.
    """
    if isinstance(path, str):
        return path.split(".")
    return [str(segment) for segment in path]


def _step(container: Any, segment: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(segment, _MISSING)
    if isinstance(container, Sequence) and not isinstance(container, str):
        try:
            return container[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return _MISSING


def get_path(data: Any, path: str | Sequence[str], fallback: Any = None) -> Any:
    """Read a value at a dotted path.

    Args:
        data: Root mapping.
        path: Dotted path or segments.
        fallback: Returned when any segment is absent.

    Returns:
        The value at the path, or fallback.
    """
    current = data
    for segment in split_path(path):
        current = _step(current, segment)
        if current is _MISSING:
            return fallback
    return current


def has_path(data: Any, path: str | Sequence[str]) -> bool:
    """Check whether a dotted path exists, even if its value is None."""
    current = data
    for segment in split_path(path):
        current = _step(current, segment)
        if current is _MISSING:
            return False
    return True


def set_path(data: MutableMapping[str, Any], path: str | Sequence[str], value: Any) -> None:
    """Write a value at a dotted path, creating intermediate mappings.

    Args:
        data: Root mapping, modified in place.
        path: Dotted path or segments.
        value: Value to write.

    Raises:
        TypeError: If an intermediate value can't hold the next segment.
    """
    segments = split_path(path)
    current: Any = data
    for segment in segments[:-1]:
        following = _step(current, segment)
        if following is _MISSING or not isinstance(following, MutableMapping | MutableSequence):
            following = {}
            _assign(current, segment, following)
        current = following
    _assign(current, segments[-1], value)


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, MutableMapping):
        container[segment] = value
    elif isinstance(container, MutableSequence):
        container[int(segment)] = value
    else:
        raise TypeError(f"Can't set '{segment}' on {type(container).__name__}")
