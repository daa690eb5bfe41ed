"""Shared collaborators for records and aggregates.

A context carries the transport, the uid allocator, and the binding through
which every state write passes. Instances created without a context share the
process default; tests usually pass their own.

Usage:
    context = RecordContext(transport=FakeTransport())
    task = Task({"title": "Write tests"}, context=context)

    with_binding = context.replace(binding=ObservingBinding())
"""

from __future__ import annotations

import dataclasses
from collections.abc import MutableMapping, MutableSequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from restrecord.http.protocol import Transport
from restrecord.http.transport import HttpxTransport
from restrecord.structures.allocator import UidAllocator


class Binding(Protocol):
    """Write primitive that an observation layer can hook into."""

    def set(self, target: Any, key: str, value: Any) -> None:
        """Write ``value`` at ``key`` on a mapping or an object attribute."""
        ...

    def delete(self, target: Any, key: str) -> None:
        """Remove ``key`` from a mapping or an object attribute."""
        ...


class DirectBinding:
    """Plain writes with no observation."""

    def set(self, target: Any, key: str, value: Any) -> None:
        if isinstance(target, MutableMapping):
            target[key] = value
        elif isinstance(target, MutableSequence):
            target[int(key)] = value
        else:
            object.__setattr__(target, key, value)

    def delete(self, target: Any, key: str) -> None:
        if isinstance(target, MutableMapping):
            target.pop(key, None)
        elif isinstance(target, MutableSequence):
            del target[int(key)]
        elif key in vars(target):
            object.__delattr__(target, key)


@dataclass
class RecordContext:
    """Transport, uid allocator and binding used by records and aggregates.

    The transport is created lazily from ``TransportSettings`` when none is
    given, so building records never requires a network client.
    """

    transport: Transport | None = None
    allocator: UidAllocator = field(default_factory=UidAllocator)
    binding: Binding = field(default_factory=DirectBinding)

    def get_transport(self) -> Transport:
        if self.transport is None:
            self.transport = HttpxTransport.from_settings()
        return self.transport

    def replace(self, **changes: Any) -> RecordContext:
        """Copy of this context with some collaborators swapped."""
        return dataclasses.replace(self, **changes)


_default_context: RecordContext | None = None


def get_default_context() -> RecordContext:
    """The context used by instances created without one."""
    global _default_context
    if _default_context is None:
        _default_context = RecordContext()
    return _default_context


def set_default_context(context: RecordContext | None) -> None:
    """Replace the default context (None restores a fresh one on next use)."""
    global _default_context
    _default_context = context
