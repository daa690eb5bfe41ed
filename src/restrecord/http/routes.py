"""Route templating.

Routes are URL templates with ``{name}`` placeholders. Missing or None
parameters are replaced with an empty string.

Usage:
    resolver = PatternRouteResolver()
    resolver.resolve("/tasks/{id}", {"id": 5})  # "/tasks/5"
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Protocol

DEFAULT_ROUTE_PARAMETER_PATTERN = r"\{([^}]+)\}"


class RouteResolver(Protocol):
    """Turns a route template and parameters into a URL."""

    def resolve(self, route: str, parameters: Mapping[str, Any]) -> str: ...


class PatternRouteResolver:
    """Substitutes parameters matched by a regex with one capture group.

    Args:
        pattern: Regex whose first group is the parameter name.
    """

    def __init__(self, pattern: str | re.Pattern[str] = DEFAULT_ROUTE_PARAMETER_PATTERN):
        self._pattern = re.compile(pattern)

    @property
    def pattern(self) -> re.Pattern[str]:
        return self._pattern

    def resolve(self, route: str, parameters: Mapping[str, Any]) -> str:
        def replace(match: re.Match[str]) -> str:
            value = parameters.get(match.group(1))
            return "" if value is None else str(value)

        return self._pattern.sub(replace, route)
