"""Transport protocol for swappable HTTP backends.

Records and aggregates never talk to a network library directly. They build a
``RequestDescriptor`` and hand it to whatever transport the context carries:

- httpx (default, ``HttpxTransport``)
- in-memory fakes for tests
- anything else implementing ``send``

Usage:
    transport = HttpxTransport(base_url="https://api.example.com")
    context = RecordContext(transport=transport)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(slots=True)
class RequestDescriptor:
    """Everything a transport needs to send one request."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    data: Any = None


@runtime_checkable
class Response(Protocol):
    """A received response, as seen by records and aggregates."""

    def get_data(self) -> Any:
        """Decoded body, or None when there is none."""
        ...

    def get_status(self) -> int:
        """HTTP status code."""
        ...

    def get_headers(self) -> Mapping[str, str]:
        """Response headers."""
        ...

    def get_validation_errors(self) -> Any:
        """Per-attribute errors from a validation failure response."""
        ...


class Transport(Protocol):
    """Sends requests. Implementations raise ``RequestError`` on failure."""

    async def send(self, request: RequestDescriptor) -> Response:
        """Send a request and return its response.

        Raises:
            RequestError: If the request failed, with the response if any.
        """
        ...
