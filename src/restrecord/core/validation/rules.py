"""Validation rules that can be chained and reformatted.

Rules are callables ``(value, attribute, record) -> True | str``. A rule built
here returns ``True`` when the value passes and a formatted message when it
fails.

Usage:
    class User(Record):
        def validation(self):
            return {
                "name": [required, string.and_(length(2))],
                "email": email.or_(empty),
                "age": integer.and_(between(18, 120)).format("Invalid age ${value}"),
            }
"""

from __future__ import annotations

import inspect
import json as jsonlib
import math
import re
import uuid as uuidlib
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from string import Template
from typing import Any, TypeAlias

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from restrecord.core.cloning import deep_equal
from restrecord.core.validation.messages import get_messages

Test: TypeAlias = Callable[[Any, str, Any], bool]
Chainable: TypeAlias = Callable[[Any, str, Any], Any]
Format: TypeAlias = str | Callable[[dict[str, Any]], str]

_url_adapter: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_ASCII_PATTERN = re.compile(r"^[\x00-\x7F]+$")


class ValidationRule:
    """A named test with "and"/"or" chains and an optional custom message.

    Chaining and formatting return new rules, so a shared base rule such as
    ``required`` is never modified.

    Args:
        name: Message name used to look up the default error message.
        test: Callable ``(value, attribute, record) -> bool``.
        data: Extra message context, eg. ``{"min": 3}``.
    """

    __slots__ = ("name", "test", "data", "_and", "_or", "_format")

    def __init__(
        self,
        name: str,
        test: Test,
        data: Mapping[str, Any] | None = None,
        *,
        and_rules: Sequence[Chainable] = (),
        or_rules: Sequence[Chainable] = (),
        format: Format | None = None,
    ) -> None:
        self.name = name
        self.test = test
        self.data = dict(data or {})
        self._and: tuple[Chainable, ...] = tuple(and_rules)
        self._or: tuple[Chainable, ...] = tuple(or_rules)
        self._format = format

    def __call__(self, value: Any, attribute: str = "", record: Any = None) -> bool | str:
        if self.test(value, attribute, record):
            # Any "and" rule that returns a string has failed the chain.
            for chained in self._and:
                result = chained(value, attribute, record)
                if isinstance(result, str):
                    return result
            return True

        # Anything but a string from an "or" rule counts as a pass.
        for chained in self._or:
            if not isinstance(chained(value, attribute, record), str):
                return True

        return self.message({**self.data, "attribute": attribute, "value": value})

    def __repr__(self) -> str:
        return f"ValidationRule({self.name!r})"

    def message(self, context: dict[str, Any]) -> str:
        """Render this rule's failure message for a context."""
        if self._format is None:
            return get_messages().get(self.name, context)
        if isinstance(self._format, str):
            return Template(self._format).safe_substitute(context)
        return self._format(context)

    def _copy(self, **changes: Any) -> ValidationRule:
        options: dict[str, Any] = {
            "and_rules": self._and,
            "or_rules": self._or,
            "format": self._format,
        }
        options.update(changes)
        return ValidationRule(self.name, self.test, self.data, **options)

    def format(self, format: Format) -> ValidationRule:
        """Copy of this rule with a custom ``${name}`` template or formatter."""
        return self._copy(format=format)

    def and_(self, *rules: Chainable) -> ValidationRule:
        """Copy of this rule that also requires every given rule to pass."""
        return self._copy(and_rules=self._and + rules)

    def or_(self, *rules: Chainable) -> ValidationRule:
        """Copy of this rule that passes if any given rule passes instead."""
        return self._copy(or_rules=self._or + rules)


def rule(name: str, test: Callable[..., bool], data: Mapping[str, Any] | None = None) -> ValidationRule:
    """Create a rule from a test that accepts ``value`` or ``(value, attribute, record)``."""

    if len(inspect.signature(test).parameters) >= 3:
        return ValidationRule(name, lambda value, attribute, record: bool(test(value, attribute, record)), data)
    return ValidationRule(name, lambda value, attribute, record: bool(test(value)), data)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _as_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _compare(value: Any, other: Any, op: Callable[[Any, Any], bool]) -> bool:
    try:
        return bool(op(value, other))
    except TypeError:
        return False


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def _is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuidlib.UUID(value)
    except ValueError:
        return False
    return True


def _is_json(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        jsonlib.loads(value)
    except ValueError:
        return False
    return True


def _size(value: Any) -> int:
    try:
        return len(value)
    except TypeError:
        return 0


required = rule("required", lambda value: not (value is None or value == ""))
defined = rule("defined", lambda value: value is not None)
string = rule("string", lambda value: isinstance(value, str))
number = rule("number", _is_number)
integer = rule("integer", lambda value: isinstance(value, int) and not isinstance(value, bool))
boolean = rule("boolean", lambda value: isinstance(value, bool))
array = rule("array", lambda value: isinstance(value, list | tuple))
object_ = rule("object", lambda value: isinstance(value, Mapping))
alpha = rule("alpha", lambda value: isinstance(value, str) and value.isalpha())
alphanumeric = rule("alphanumeric", lambda value: isinstance(value, str) and value.isalnum())
ascii = rule("ascii", lambda value: isinstance(value, str) and bool(_ASCII_PATTERN.match(value)))
email = rule("email", lambda value: isinstance(value, str) and bool(_EMAIL_PATTERN.match(value)))
url = rule("url", _is_url)
uuid = rule("uuid", _is_uuid)
json = rule("json", _is_json)
positive = rule("positive", lambda value: _as_number(value) > 0)
negative = rule("negative", lambda value: _as_number(value) < 0)
empty = rule("empty", lambda value: value is None or _size(value) == 0)


def gt(minimum: Any) -> ValidationRule:
    return rule("gt", lambda value: _compare(value, minimum, lambda a, b: a > b), {"min": minimum})


def gte(minimum: Any) -> ValidationRule:
    return rule("gte", lambda value: _compare(value, minimum, lambda a, b: a >= b), {"min": minimum})


def lt(maximum: Any) -> ValidationRule:
    return rule("lt", lambda value: _compare(value, maximum, lambda a, b: a < b), {"max": maximum})


def lte(maximum: Any) -> ValidationRule:
    return rule("lte", lambda value: _compare(value, maximum, lambda a, b: a <= b), {"max": maximum})


def min(minimum: Any) -> ValidationRule:  # noqa: A001
    """Alias for ``gte``."""
    return gte(minimum)


def max(maximum: Any) -> ValidationRule:  # noqa: A001
    """Alias for ``lte``."""
    return lte(maximum)


def between(minimum: Any, maximum: Any, inclusive: bool = True) -> ValidationRule:
    """Value within a range, inclusive by default."""
    if inclusive:
        return rule(
            "between_inclusive",
            lambda value: _compare(value, minimum, lambda a, b: a >= b)
            and _compare(value, maximum, lambda a, b: a <= b),
            {"min": minimum, "max": maximum},
        )
    return rule(
        "between",
        lambda value: _compare(value, minimum, lambda a, b: a > b)
        and _compare(value, maximum, lambda a, b: a < b),
        {"min": minimum, "max": maximum},
    )


def length(minimum: int, maximum: int | None = None) -> ValidationRule:
    """Length at least ``minimum``, and at most ``maximum`` when given."""
    if maximum is None:
        return rule("length", lambda value: _size(value) >= minimum, {"min": minimum})
    return rule(
        "length_between",
        lambda value: minimum <= _size(value) <= maximum,
        {"min": minimum, "max": maximum},
    )


def match(pattern: str | re.Pattern[str]) -> ValidationRule:
    compiled = re.compile(pattern)
    return rule(
        "match",
        lambda value: isinstance(value, str) and bool(compiled.search(value)),
        {"pattern": compiled.pattern},
    )


def equals(other: Any) -> ValidationRule:
    return rule("equals", lambda value: deep_equal(value, other), {"other": other})


def same(other: str) -> ValidationRule:
    """Value equals another attribute of the same record."""
    return rule(
        "same",
        lambda value, attribute, record: deep_equal(value, record.get(other)),
        {"other": other},
    )


def not_(*values: Any) -> ValidationRule:
    """Value is none of the given values."""
    return rule("not", lambda value: not any(deep_equal(value, v) for v in values))


def after(moment: datetime | date | str) -> ValidationRule:
    limit = _as_datetime(moment)

    def test(value: Any) -> bool:
        parsed = _as_datetime(value)
        return parsed is not None and limit is not None and _compare(parsed, limit, lambda a, b: a > b)

    return rule("after", test, {"date": moment})


def before(moment: datetime | date | str) -> ValidationRule:
    limit = _as_datetime(moment)

    def test(value: Any) -> bool:
        parsed = _as_datetime(value)
        return parsed is not None and limit is not None and _compare(parsed, limit, lambda a, b: a < b)

    return rule("before", test, {"date": moment})
