"""Request lifecycle shared by records and aggregates.

Every request follows the same protocol:

1. await the preflight hook, which returns a ``RequestOperation``:
   ``SKIP`` returns None without running any handler, ``REDUNDANT`` runs the
   success handler with None and returns None, ``CONTINUE`` goes on;
2. build the request descriptor (after preflight, so it sees state preflight
   just changed, eg. mutated save data);
3. send it through the context's transport;
4. run the success handler and return the response, or on any error run the
   failure handler and re-raise.

Usage:
    class Task(Record):
        def routes(self):
            return {"fetch": "/tasks/{id}", "save": "/tasks"}

    task = Task({"id": 1}, context=context)
    await task.fetch()
    await task.save(headers={"X-Request-Id": "abc"})
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, TypeAlias

from pydantic import BaseModel

from restrecord.config.options import ResourceOptions, merge_options
from restrecord.core.cloning import deep_copy
from restrecord.core.errors import MissingRouteError, RequestError, ResponseError
from restrecord.core.events import EventEmitter
from restrecord.core.identity import Uid
from restrecord.core.paths import get_path, set_path, split_path
from restrecord.core.types import FailureHandler, Preflight, RequestOperation, SuccessHandler
from restrecord.http.protocol import RequestDescriptor, Response
from restrecord.http.routes import PatternRouteResolver, RouteResolver
from restrecord.structures.context import RecordContext, get_default_context

logger = logging.getLogger(__name__)

_MISSING = object()

Config: TypeAlias = RequestDescriptor | Callable[[], RequestDescriptor]


class Resource(EventEmitter, ABC):
    """Base for records and aggregates: options, routes, requests, state flags.

    Args:
        options: Options for this instance; highest precedence layer.
        context: Transport, uid allocator and binding. The process default
            context is used when None.
    """

    options_class: ClassVar[type[ResourceOptions]] = ResourceOptions

    loading: bool
    saving: bool
    deleting: bool
    fatal: bool

    def __init__(
        self,
        options: Mapping[str, Any] | BaseModel | None = None,
        *,
        context: RecordContext | None = None,
    ) -> None:
        super().__init__()
        self._context = context if context is not None else get_default_context()
        self._uid = self._context.allocator.allocate()
        self.set_options(options)
        self.clear_state()

    @property
    def uid(self) -> Uid:
        """Immutable identity token, unique within the context's allocator."""
        return self._uid

    @property
    def context(self) -> RecordContext:
        return self._context

    def __repr__(self) -> str:
        return f"<{type(self).__name__} #{self._uid}>"

    def boot(self) -> None:
        """Hook called at the end of construction."""

    # Options

    def options(self) -> Mapping[str, Any]:
        """Instance defaults, applied under constructor options."""
        return {}

    def set_options(self, *options: Mapping[str, Any] | BaseModel | None) -> None:
        """Replace all options, merging the given layers over the defaults."""
        self._options = merge_options(self.options_class, *options, self.options())

    def get_options(self) -> ResourceOptions:
        return self._options

    def get_option(self, path: str, fallback: Any = None) -> Any:
        """Read an option by name or dotted path, eg. ``"methods.save"``."""
        head, *rest = split_path(path)
        value = getattr(self._options, head, _MISSING)
        if value is _MISSING:
            return fallback
        if rest:
            return get_path(value, rest, fallback)
        return value

    def set_option(self, path: str, value: Any) -> None:
        """Set one option by name or dotted path."""
        head, *rest = split_path(path)
        if rest:
            current = deep_copy(self.get_option(head, {}))
            set_path(current, rest, value)
            value = current
        self._options = merge_options(self.options_class, {head: value}, self._options)

    # State

    def set_state(self, name: str, value: bool) -> None:
        """Write a state flag through the context's binding."""
        self._context.binding.set(self, name, value)

    def clear_state(self) -> None:
        for name in ("loading", "saving", "deleting", "fatal"):
            self.set_state(name, False)

    # Routes

    def routes(self) -> Mapping[str, str]:
        """Route templates keyed by request kind, eg. ``{"fetch": "/tasks/{id}"}``."""
        return {}

    def get_route(self, key: str, fallback: str | None = None) -> str:
        """Route template for a key, or for ``fallback`` if the key has none.

        Raises:
            MissingRouteError: If neither key has a route.
        """
        routes = self.routes()
        route = routes.get(key)
        if not route and fallback is not None:
            route = routes.get(fallback)
        if not route:
            raise MissingRouteError(key)
        return route

    def get_route_resolver(self) -> RouteResolver:
        return PatternRouteResolver(self.get_option("route_parameter_pattern"))

    def get_route_parameters(self) -> dict[str, Any]:
        """Parameters substituted into route templates."""
        return {}

    def get_url(self, route: str, parameters: Mapping[str, Any] | None = None) -> str:
        return self.get_route_resolver().resolve(route, parameters or {})

    def get_fetch_route(self) -> str:
        return self.get_route("fetch")

    def get_save_route(self) -> str:
        return self.get_route("save")

    def get_delete_route(self) -> str:
        return self.get_route("delete")

    def get_fetch_url(self) -> str:
        return self.get_url(self.get_fetch_route(), self.get_route_parameters())

    def get_save_url(self) -> str:
        return self.get_url(self.get_save_route(), self.get_route_parameters())

    def get_delete_url(self) -> str:
        return self.get_url(self.get_delete_route(), self.get_route_parameters())

    # Request parts

    def get_default_headers(self) -> dict[str, str]:
        return {}

    def get_fetch_headers(self) -> dict[str, str]:
        return self.get_default_headers()

    def get_save_headers(self) -> dict[str, str]:
        return self.get_default_headers()

    def get_delete_headers(self) -> dict[str, str]:
        return self.get_default_headers()

    def get_fetch_query(self) -> dict[str, Any]:
        return {}

    def get_save_query(self) -> dict[str, Any]:
        return {}

    def get_delete_query(self) -> dict[str, Any]:
        return {}

    def get_delete_body(self) -> Any:
        return None

    @abstractmethod
    def get_save_data(self) -> Any: ...

    def get_fetch_method(self) -> str:
        return self.get_option("methods.fetch")

    def get_save_method(self) -> str:
        return self.get_option("methods.save")

    def get_create_method(self) -> str:
        return self.get_option("methods.create")

    def get_update_method(self) -> str:
        return self.get_option("methods.update")

    def get_patch_method(self) -> str:
        return self.get_option("methods.patch")

    def get_delete_method(self) -> str:
        return self.get_option("methods.delete")

    def get_validation_error_status(self) -> int:
        return self.get_option("validation_error_status", 422)

    def is_backend_validation_error(self, error: BaseException) -> bool:
        """Whether an error carries a response with the validation error status."""
        if not isinstance(error, RequestError | ResponseError):
            return False
        response = error.get_response()
        if response is None:
            return False
        return response.get_status() == self.get_validation_error_status()

    # Lifecycle

    async def execute(
        self,
        config: Config,
        preflight: Preflight,
        on_success: SuccessHandler,
        on_failure: FailureHandler,
    ) -> Response | None:
        """Run one request through preflight, transport and handlers.

        Args:
            config: Request descriptor, or a callable building it after preflight.
            preflight: Decides whether to continue, skip, or succeed without a request.
            on_success: Called with the response (None when redundant).
            on_failure: Called with the error and its response, if any.

        Returns:
            The response, or None when skipped or redundant.

        Raises:
            Exception: Whatever preflight raised (eg. ``ValidationError``), or
                any later error once ``on_failure`` has run.
        """
        operation = await preflight()

        if operation is RequestOperation.SKIP:
            logger.debug("Skipping request for %r", self)
            return None

        if operation is RequestOperation.REDUNDANT:
            logger.debug("Redundant request for %r", self)
            on_success(None)
            return None

        try:
            request = config() if callable(config) else config
            response = await self._context.get_transport().send(request)
            on_success(response)
        except Exception as error:
            failed = error.get_response() if isinstance(error, RequestError | ResponseError) else None
            on_failure(error, failed)
            raise

        return response

    def _build_request(
        self,
        overrides: Mapping[str, Any],
        url: Callable[[], str],
        method: Callable[[], str],
        params: Callable[[], dict[str, Any]],
        headers: Callable[[], dict[str, str]],
        data: Callable[[], Any] | None = None,
    ) -> RequestDescriptor:
        def pick(key: str, default: Callable[[], Any]) -> Any:
            value = overrides.get(key)
            return default() if value is None else value

        # Params and headers given per call are merged over the defaults.
        def merge(key: str, default: Callable[[], dict[str, Any]]) -> dict[str, Any]:
            return {**default(), **(overrides.get(key) or {})}

        return RequestDescriptor(
            url=pick("url", url),
            method=pick("method", method),
            params=merge("params", params),
            headers=merge("headers", headers),
            data=pick("data", data) if data is not None else overrides.get("data"),
        )

    async def fetch(self, **overrides: Any) -> Response | None:
        """Fetch from the API.

        Args:
            **overrides: Any of ``url``, ``method``, ``params``, ``headers``.
                ``params`` and ``headers`` are merged over the defaults.
        """

        def config() -> RequestDescriptor:
            return self._build_request(
                overrides,
                url=self.get_fetch_url,
                method=self.get_fetch_method,
                params=self.get_fetch_query,
                headers=self.get_fetch_headers,
            )

        return await self.execute(config, self.on_fetch, self.on_fetch_success, self.on_fetch_failure)

    async def save(self, **overrides: Any) -> Response | None:
        """Persist to the API.

        Args:
            **overrides: Any of ``url``, ``method``, ``data``, ``params``, ``headers``.
        """

        def config() -> RequestDescriptor:
            return self._build_request(
                overrides,
                url=self.get_save_url,
                method=self.get_save_method,
                params=self.get_save_query,
                headers=self.get_save_headers,
                data=self.get_save_data,
            )

        return await self.execute(config, self.on_save, self.on_save_success, self.on_save_failure)

    async def delete(self, **overrides: Any) -> Response | None:
        """Delete from the API.

        Args:
            **overrides: Any of ``url``, ``method``, ``data``, ``params``, ``headers``.
        """

        def config() -> RequestDescriptor:
            return self._build_request(
                overrides,
                url=self.get_delete_url,
                method=self.get_delete_method,
                params=self.get_delete_query,
                headers=self.get_delete_headers,
                data=self.get_delete_body,
            )

        return await self.execute(config, self.on_delete, self.on_delete_success, self.on_delete_failure)

    @abstractmethod
    async def on_fetch(self) -> RequestOperation: ...

    @abstractmethod
    def on_fetch_success(self, response: Response) -> None: ...

    @abstractmethod
    def on_fetch_failure(self, error: BaseException, response: Response | None = None) -> None: ...

    @abstractmethod
    async def on_save(self) -> RequestOperation: ...

    @abstractmethod
    def on_save_success(self, response: Response | None) -> None: ...

    @abstractmethod
    def on_save_failure(self, error: BaseException, response: Response | None = None) -> None: ...

    @abstractmethod
    async def on_delete(self) -> RequestOperation: ...

    @abstractmethod
    def on_delete_success(self, response: Response | None) -> None: ...

    @abstractmethod
    def on_delete_failure(self, error: BaseException, response: Response | None = None) -> None: ...
