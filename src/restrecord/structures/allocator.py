"""Uid allocation service.

UidAllocator is a stateful service that hands out record and aggregate uids.
"""

from __future__ import annotations

import uuid

from restrecord.core.identity import Uid


class UidAllocator:
    """Allocates uids from a monotonic counter within one scope.

    Args:
        scope: Scope shared by every uid from this allocator. A random short
            hex string by default, so separate allocators never collide.
        start: First index to hand out.
    """

    def __init__(self, scope: str | None = None, start: int = 1):
        self._scope = scope if scope is not None else uuid.uuid4().hex[:8]
        self._next_index = start

    @property
    def scope(self) -> str:
        return self._scope

    def allocate(self) -> Uid:
        """Allocate the next uid.

        Returns:
            Newly allocated Uid.
        """
        index = self._next_index
        self._next_index += 1
        return Uid(scope=self._scope, index=index)
