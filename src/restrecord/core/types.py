"""Core type definitions for restrecord."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum, auto
from typing import Any, TypeAlias


class RequestOperation(Enum):
    """Outcome of a preflight hook, deciding what happens to a request."""

    CONTINUE = auto()
    """Build and send the request."""

    REDUNDANT = auto()
    """Don't send, but treat as a successful no-op (success handler gets None)."""

    SKIP = auto()
    """Don't send and don't run any handler, eg. already in flight."""


Mutation: TypeAlias = Callable[[Any], Any]
"""Pure value transform applied by a mutation pipeline."""

RuleResult: TypeAlias = bool | str | list[Any] | dict[str, Any] | None
"""What a validation rule may yield: True to pass, otherwise error(s)."""

Rule: TypeAlias = Callable[[Any, str, Any], RuleResult | Awaitable[RuleResult]]
"""Validation rule signature: (value, attribute, record) -> result."""

Listener: TypeAlias = Callable[[dict[str, Any]], Any]
"""Event listener, receives the event context."""

Preflight: TypeAlias = Callable[[], Awaitable[RequestOperation]]
SuccessHandler: TypeAlias = Callable[[Any], None]
FailureHandler: TypeAlias = Callable[[BaseException, Any], None]
