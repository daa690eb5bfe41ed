"""Response implementations.

Usage:
    response = HttpResponse(httpx_response)
    response.get_data()  # decoded JSON body, or None

    ProxyResponse(201, {"id": 5}).get_status()  # 201
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx


class HttpResponse:
    """Wraps an ``httpx.Response``.

    The body is decoded as JSON when it has content. An empty body (eg. 204)
    is None, and a body that isn't JSON is returned as text.
    """

    def __init__(self, response: httpx.Response):
        self.response = response

    def get_data(self) -> Any:
        if not self.response.content:
            return None
        try:
            return self.response.json()
        except ValueError:
            return self.response.text

    def get_status(self) -> int:
        return self.response.status_code

    def get_headers(self) -> Mapping[str, str]:
        return dict(self.response.headers)

    def get_validation_errors(self) -> Any:
        return self.get_data()

    def __repr__(self) -> str:
        return f"HttpResponse({self.response.status_code})"


class ProxyResponse:
    """A response built in memory, for custom transports and tests.

    Args:
        status: Status code, coerced to int.
        data: Body data, {} when None.
        headers: Headers, {} when None.
    """

    def __init__(
        self,
        status: int | str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ):
        self.status = _safe_int(status)
        self.data = {} if data is None else data
        self.headers = dict(headers or {})

    def get_data(self) -> Any:
        return self.data

    def get_status(self) -> int:
        return self.status

    def get_headers(self) -> Mapping[str, str]:
        return self.headers

    def get_validation_errors(self) -> Any:
        return self.data

    def __repr__(self) -> str:
        return f"ProxyResponse({self.status})"


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
