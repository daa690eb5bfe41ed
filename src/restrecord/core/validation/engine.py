"""Concurrent attribute validation.

The engine evaluates every rule of an attribute at once with
``asyncio.gather`` and validates separate attributes concurrently too.
Rule results are normalized into a flat error list:

* ``True`` (or any other non-error value) passes,
* a string is one error message,
* a non-empty mapping is one nested error (eg. from a nested record),
* a list or tuple contributes its string and mapping members only.

Usage:
    engine = ValidationEngine(record)
    errors = await engine.validate()          # {"name": ["Required"]}
    errors = await engine.validate("email")   # {} when valid
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeAlias, runtime_checkable

from restrecord.core.errors import AttributeNotDefinedError
from restrecord.core.types import Rule

logger = logging.getLogger(__name__)

ErrorEntry: TypeAlias = str | Mapping[str, Any] | list[Any]


@runtime_checkable
class Validatable(Protocol):
    """Anything that can validate itself, eg. a nested record or aggregate."""

    async def validate(self, attributes: Any = None) -> Any: ...


class ValidationSubject(Protocol):
    """What the engine needs from the record it validates."""

    def has(self, path: str) -> bool: ...

    def get(self, path: str, fallback: Any = None) -> Any: ...

    def attribute_names(self) -> list[str]: ...

    def get_validation_rules(self, attribute: str) -> list[Rule]: ...

    def set_attribute_errors(self, attribute: str, errors: list[ErrorEntry]) -> None: ...

    def get_option(self, name: str) -> Any: ...


def normalize(result: Any) -> list[ErrorEntry]:
    """Turn one rule output into zero or more error entries."""
    if isinstance(result, str):
        return [result]
    if isinstance(result, Mapping):
        return [result] if result else []
    if isinstance(result, list | tuple):
        return [
            item
            for item in result
            if isinstance(item, str) or (isinstance(item, Mapping) and item)
        ]
    if result is not None and not isinstance(result, bool):
        logger.warning("Discarding invalid rule output of type %s", type(result).__name__)
    return []


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ValidationEngine:
    """Validates the attributes of one record and records the errors on it.

    Args:
        subject: The record being validated.
    """

    def __init__(self, subject: ValidationSubject):
        self._subject = subject

    async def validate_attribute(self, attribute: str) -> list[ErrorEntry] | ErrorEntry:
        """Validate a single attribute and store its errors on the record.

        Args:
            attribute: Attribute name.

        Returns:
            The attribute's error list, or only the first error when the
            record uses ``use_first_error_only``.

        Raises:
            AttributeNotDefinedError: If the record has no such attribute.
        """
        subject = self._subject
        if not subject.has(attribute):
            raise AttributeNotDefinedError(attribute)

        value = subject.get(attribute)
        rules = subject.get_validation_rules(attribute)

        tasks = [_resolve(rule(value, attribute, subject)) for rule in rules]
        nested = subject.get_option("validate_recursively") and isinstance(value, Validatable)
        if nested:
            tasks.append(value.validate())

        results = await asyncio.gather(*tasks)

        errors: list[ErrorEntry] = []
        rule_results = results[:-1] if nested else results
        for result in rule_results:
            errors.extend(normalize(result))
        if nested and results[-1]:
            errors.append(results[-1])

        subject.set_attribute_errors(attribute, errors)

        if subject.get_option("use_first_error_only") and errors:
            return errors[0]
        return errors

    async def validate(
        self, attributes: str | Sequence[str] | None = None
    ) -> dict[str, list[ErrorEntry] | ErrorEntry]:
        """Validate one, several, or all attributes.

        Args:
            attributes: A name, a list of names, or None for every attribute.

        Returns:
            Attribute name to errors, for attributes that have errors only.

        Raises:
            TypeError: If ``attributes`` is not a string, list or None.
        """
        if attributes is None:
            attributes = self._subject.attribute_names()

        if isinstance(attributes, str):
            errors = await self.validate_attribute(attributes)
            return {attributes: errors} if errors else {}

        if isinstance(attributes, list | tuple):
            names = list(attributes)
            results = await asyncio.gather(*(self.validate_attribute(name) for name in names))
            return {name: errors for name, errors in zip(names, results, strict=True) if errors}

        raise TypeError("Invalid argument for validation attributes")
