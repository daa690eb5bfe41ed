"""Per-attribute mutation pipelines.

Usage:
    pipeline = MutationPipeline({
        "name": [str.strip, str.title],
        "age": int,
    })
    pipeline.apply("name", "  ada lovelace ")  # "Ada Lovelace"
    pipeline.apply("other", 3)                  # 3 (no pipeline)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import reduce
from typing import Any

from restrecord.core.types import Mutation


def compose(functions: Sequence[Mutation]) -> Mutation:
    """Compose functions left to right into a single callable."""
    chain = tuple(functions)

    def composed(value: Any) -> Any:
        return reduce(lambda result, function: function(result), chain, value)

    return composed


class MutationPipeline:
    """Compiled mutation chains keyed by attribute name.

    Args:
        definitions: Attribute name to a mutation or an ordered list of them.
    """

    def __init__(self, definitions: Mapping[str, Mutation | Sequence[Mutation]] | None = None):
        self._definitions = dict(definitions or {})
        self._compiled: dict[str, Mutation] = {}
        self.compile()

    def compile(self) -> dict[str, Mutation]:
        """Build one composed function per attribute from its definition.

        Safe to call repeatedly; every call rebuilds from the same definitions.

        Returns:
            Attribute name to compiled mutation.
        """
        compiled: dict[str, Mutation] = {}
        for attribute, definition in self._definitions.items():
            if callable(definition):
                compiled[attribute] = definition  # type: ignore[assignment]
            else:
                compiled[attribute] = compose(list(definition))
        self._compiled = compiled
        return dict(compiled)

    def has(self, attribute: str) -> bool:
        return attribute in self._compiled

    def apply(self, attribute: str, value: Any) -> Any:
        """Run an attribute's pipeline, or return the value unchanged."""
        mutation = self._compiled.get(attribute)
        if mutation is None:
            return value
        return mutation(value)
