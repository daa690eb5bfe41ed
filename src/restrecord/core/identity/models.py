"""Record identity models.

Usage:
    uid = Uid(scope="a1b2c3d4", index=42)
    str(uid)  # "a1b2c3d4:42"
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Uid:
    """Process-unique identity token for records and aggregates.

    Scope is the allocator that issued the token, so tokens from separate
    allocators never collide. Not a business identifier: it is never sent to
    the server.
    """

    scope: str = ""
    index: int = 0

    def __hash__(self) -> int:
        return hash((self.scope, self.index))

    def __str__(self) -> str:
        return f"{self.scope}:{self.index}"
