"""Structures: records, aggregates and the request lifecycle they share.

Usage:
    from restrecord.structures import Aggregate, Record, RecordContext
"""

from restrecord.structures.aggregate import LAST_PAGE, Aggregate
from restrecord.structures.allocator import UidAllocator
from restrecord.structures.base import Resource
from restrecord.structures.context import (
    Binding,
    DirectBinding,
    RecordContext,
    get_default_context,
    set_default_context,
)
from restrecord.structures.record import RESERVED, Record

__all__ = [
    "Resource",
    "Record",
    "Aggregate",
    "RESERVED",
    "LAST_PAGE",
    "UidAllocator",
    "RecordContext",
    "Binding",
    "DirectBinding",
    "get_default_context",
    "set_default_context",
]
