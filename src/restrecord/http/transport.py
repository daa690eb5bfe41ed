"""httpx transport.

Usage:
    transport = HttpxTransport(base_url="https://api.example.com")
    response = await transport.send(RequestDescriptor("/tasks/1"))
    await transport.aclose()

    # Settings from RESTRECORD_HTTP_* environment variables:
    transport = HttpxTransport.from_settings(TransportSettings())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from restrecord.config.settings import TransportSettings
from restrecord.core.errors import RequestError
from restrecord.http.protocol import RequestDescriptor
from restrecord.http.responses import HttpResponse

logger = logging.getLogger(__name__)

_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class HttpxTransport:
    """Sends requests through an ``httpx.AsyncClient``.

    An injected client is used as-is and never closed by this transport. If
    none is injected, one is created lazily and closed by ``aclose``.

    Args:
        base_url: Prefix for relative request URLs.
        timeout: Request timeout in seconds.
        headers: Headers sent with every request.
        follow_redirects: Whether redirects are followed.
        http_client: Client to use instead of creating one.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        follow_redirects: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._follow_redirects = follow_redirects
        self._http_client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: TransportSettings | None = None) -> HttpxTransport:
        """Create a transport from settings (environment by default)."""
        settings = settings or TransportSettings()
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout,
            headers=settings.headers,
            follow_redirects=settings.follow_redirects,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=self._headers,
                follow_redirects=self._follow_redirects,
            )
        return self._http_client

    @staticmethod
    def _build_params(params: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in params.items() if value is not None}

    async def send(self, request: RequestDescriptor) -> HttpResponse:
        """Send a request.

        Raises:
            RequestError: On a network failure (no response) or a 4xx/5xx
                status (with the response attached).
        """
        client = self._get_client()
        method = request.method.upper()
        kwargs: dict[str, Any] = {
            "headers": request.headers,
            "params": self._build_params(request.params),
        }
        if request.data is not None and method not in _BODYLESS_METHODS:
            kwargs["json"] = request.data

        logger.debug("Sending %s %s", method, request.url)
        try:
            response = await client.request(method, request.url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.debug("%s %s failed with status %d", method, request.url, e.response.status_code)
            raise RequestError(e, HttpResponse(e.response)) from e
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, request.url, e)
            raise RequestError(e) from e

        return HttpResponse(response)

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
