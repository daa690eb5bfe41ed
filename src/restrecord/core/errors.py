"""Error hierarchy.

Validation and response errors are recovered into record state and then
re-raised to the caller. Programmer errors (reserved names, invalid records,
undefined attributes, missing routes) are never caught internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from restrecord.http.protocol import Response


class RestRecordError(Exception):
    """Base class for all restrecord errors."""


class RequestError(RestRecordError):
    """The transport failed to complete a request.

    Attributes:
        error: The underlying transport exception.
        response: The response received before failing, if there was one.
    """

    def __init__(self, error: BaseException, response: Response | None = None) -> None:
        self.error = error
        self.response = response
        super().__init__(str(error))

    def get_error(self) -> BaseException:
        return self.error

    def get_response(self) -> Response | None:
        return self.response


class ResponseError(RestRecordError):
    """A response violated a structural contract, eg. wrong array length."""

    def __init__(self, message: str, response: Response | None = None) -> None:
        self.message = message
        self.response = response
        super().__init__(message)

    def get_response(self) -> Response | None:
        return self.response


class ValidationError(RestRecordError):
    """Client-side validation failed, so the request was never sent."""

    def __init__(self, errors: Any, message: str = "Record did not pass validation") -> None:
        self.message = message
        self.errors = errors
        super().__init__(message)

    def get_validation_errors(self) -> Any:
        return self.errors


class IdentifierConflictError(RestRecordError):
    """A save response tried to replace an existing, different identifier."""

    def __init__(self, current: Any, received: Any) -> None:
        self.current = current
        self.received = received
        super().__init__(
            f"Not allowed to overwrite identifier {current!r} with {received!r}"
        )


class ReservedAttributeError(RestRecordError, ValueError):
    """An attribute name collides with an internal field."""

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(f"Can't use reserved attribute name '{attribute}'")


class InvalidRecordError(RestRecordError, TypeError):
    """A value given to an aggregate is not a record."""


class AttributeNotDefinedError(RestRecordError, KeyError):
    """An operation referred to an attribute that is not set."""

    def __init__(self, attribute: str) -> None:
        self.attribute = attribute
        super().__init__(attribute)

    def __str__(self) -> str:
        return f"'{self.attribute}' is not defined"


class MissingRouteError(RestRecordError, LookupError):
    """No route is configured for a request key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Invalid or missing route '{key}'")
