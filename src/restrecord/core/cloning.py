"""Deep copy and deep equality that honour nested records.

Nested records and aggregates know how to clone themselves, so the copy
routine asks them first and only falls back to a structural copy for plain
values and containers.

Usage:
    copy = deep_copy({"owner": user_record, "tags": ["a"]})
    deep_equal(copy, original)  # True
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Protocol, Self, runtime_checkable


@runtime_checkable
class Cloneable(Protocol):
    """Instance that produces an independent copy of itself."""

    def clone(self) -> Self: ...


@runtime_checkable
class Serializable(Protocol):
    """Instance with a plain-data representation, used for comparison."""

    def to_json(self) -> Any: ...


def deep_copy(value: Any) -> Any:
    """Copy a value so that no mutable sub-object is shared with the source.

    Args:
        value: Any attribute value.

    Returns:
        An independent copy.
    """
    if isinstance(value, Cloneable) and not isinstance(value, type):
        return value.clone()
    if isinstance(value, dict):
        return {key: deep_copy(item) for key, item in value.items()}
    if isinstance(value, list):
        return [deep_copy(item) for item in value]
    if isinstance(value, tuple):
        return tuple(deep_copy(item) for item in value)
    return copy.deepcopy(value)


def deep_equal(a: Any, b: Any) -> bool:
    """Structural equality where nested records compare by their data.

    Args:
        a: First value.
        b: Second value.

    Returns:
        True if both values hold the same data.
    """
    if a is b:
        return True
    if isinstance(a, Serializable) and isinstance(b, Serializable):
        return type(a) is type(b) and deep_equal(a.to_json(), b.to_json())
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)
    if isinstance(a, list | tuple) and isinstance(b, list | tuple):
        if type(a) is not type(b) or len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b, strict=True))
    return bool(a == b)


def serialize(value: Any) -> Any:
    """Convert a value to plain data, replacing nested records with their JSON form.

    Args:
        value: Any attribute value.

    Returns:
        Dicts, lists and scalars only, ready to be sent as a request body.
    """
    if isinstance(value, Serializable) and not isinstance(value, type):
        return serialize(value.to_json())
    if isinstance(value, Mapping):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [serialize(item) for item in value]
    return value
