"""Record: a single entity with active and saved attribute state.

A record keeps two copies of its attributes: the active state that callers
edit and the reference state last synced with the server. ``changed()``
compares the two. All copies between them are deep, so editing one never
touches the other.

Usage:
    class Task(Record):
        def defaults(self):
            return {"id": None, "title": "", "done": False}

        def mutations(self):
            return {"title": [str.strip]}

        def validation(self):
            return {"title": [rules.required, rules.length(3)]}

        def routes(self):
            return {"fetch": "/tasks/{id}", "create": "/tasks", "update": "/tasks/{id}"}

    task = Task({"title": "Write docs"})
    task.title = "Write better docs"
    task.changed()  # ["title"]
    await task.save()
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Iterable, Mapping, MutableMapping, MutableSequence, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel

from restrecord.config.options import RecordOptions
from restrecord.core.cloning import deep_copy, deep_equal, serialize
from restrecord.core.errors import (
    IdentifierConflictError,
    ReservedAttributeError,
    ResponseError,
    ValidationError,
)
from restrecord.core.identity import Uid
from restrecord.core.mutation import MutationPipeline
from restrecord.core.paths import get_path, has_path, set_path, split_path
from restrecord.core.types import Mutation, RequestOperation, Rule
from restrecord.core.validation.engine import ErrorEntry, ValidationEngine
from restrecord.http.protocol import Response
from restrecord.structures.base import Resource
from restrecord.structures.context import RecordContext

if TYPE_CHECKING:
    from restrecord.structures.aggregate import Aggregate

logger = logging.getLogger(__name__)

RESERVED: frozenset[str] = frozenset(
    {
        "_aggregates",
        "_attributes",
        "_context",
        "_engine",
        "_errors",
        "_listeners",
        "_mutations",
        "_options",
        "_pending",
        "_reference",
        "_registered",
        "_registry",
        "_rules",
        "_uid",
        "aggregates",
        "attributes",
        "context",
        "deleting",
        "errors",
        "fatal",
        "loading",
        "records",
        "saved_attributes",
        "saving",
        "uid",
    }
)


def _as_names(attributes: str | Iterable[str]) -> list[str]:
    if isinstance(attributes, str):
        return [attributes]
    return list(attributes)


class Record(Resource):
    """A single observable entity bound to an API resource.

    Args:
        attributes: Initial attributes, merged over ``defaults()`` and synced.
        aggregate: Aggregate (or list of them) this record should join when saved.
        options: Record options, see ``RecordOptions``.
        context: Transport, uid allocator and binding.
    """

    options_class: ClassVar[type[RecordOptions]] = RecordOptions

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        aggregate: Aggregate | Sequence[Aggregate] | None = None,
        options: Mapping[str, Any] | BaseModel | None = None,
        *,
        context: RecordContext | None = None,
    ) -> None:
        self._registered: set[str] = set()
        super().__init__(options, context=context)

        self._aggregates: weakref.WeakValueDictionary[Uid, Aggregate] = weakref.WeakValueDictionary()
        self._attributes: dict[str, Any] = {}
        self._reference: dict[str, Any] = {}
        self._errors: dict[str, list[ErrorEntry]] = {}
        self._pending: set[asyncio.Task[Any]] = set()

        self._mutations = MutationPipeline(self.mutations())
        self._rules = self.validation()
        self._engine = ValidationEngine(self)

        self.assign(attributes or {})

        if aggregate is not None:
            self.register_aggregate(aggregate)

        self.boot()

    # Attribute-style access for registered attributes

    def __getattr__(self, name: str) -> Any:
        registered = self.__dict__.get("_registered")
        if registered is not None and name in registered:
            return self.get(name)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or name in RESERVED or hasattr(type(self), name):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    # Declarations

    def defaults(self) -> dict[str, Any]:
        """Declared attributes and their default values."""
        return {}

    def mutations(self) -> Mapping[str, Mutation | Sequence[Mutation]]:
        """Mutation pipelines keyed by attribute name."""
        return {}

    def validation(self) -> Mapping[str, Rule | Sequence[Rule]]:
        """Validation rules keyed by attribute name."""
        return {}

    # Accessors

    @property
    def attributes(self) -> dict[str, Any]:
        """Active attribute state."""
        return self._attributes

    @property
    def saved_attributes(self) -> dict[str, Any]:
        """Reference attribute state, as last synced."""
        return self._reference

    @property
    def errors(self) -> dict[str, Any]:
        return self.get_errors()

    @property
    def aggregates(self) -> list[Aggregate]:
        return list(self._aggregates.values())

    def identifier(self) -> Any:
        return self.get(self.get_option("identifier"))

    def is_new(self) -> bool:
        return self.identifier() is None

    def is_existing(self) -> bool:
        return not self.is_new()

    def attribute_names(self) -> list[str]:
        return list(self._attributes)

    def _nested(self, store: dict[str, Any], path: str) -> tuple[Record, str] | None:
        """First nested record on a dotted path, and the rest of the path below it."""
        segments = split_path(path)
        for depth in range(1, len(segments)):
            value = get_path(store, segments[:depth])
            if isinstance(value, Record):
                return value, ".".join(segments[depth:])
        return None

    def get(self, path: str, fallback: Any = None) -> Any:
        """Active value at a dotted path, or fallback.

        Paths through a nested record are read through that record.
        """
        nested = self._nested(self._attributes, path)
        if nested is not None:
            record, rest = nested
            return record.get(rest, fallback)
        return get_path(self._attributes, path, fallback)

    def saved(self, path: str, fallback: Any = None) -> Any:
        """Reference value at a dotted path, or fallback."""
        nested = self._nested(self._reference, path)
        if nested is not None:
            record, rest = nested
            return record.get(rest, fallback)
        return get_path(self._reference, path, fallback)

    def has(self, path: str) -> bool:
        """Whether the active state defines a path, even as None."""
        nested = self._nested(self._attributes, path)
        if nested is not None:
            record, rest = nested
            return record.has(rest)
        return has_path(self._attributes, path)

    def to_json(self) -> dict[str, Any]:
        """Plain copy of the active state, with nested records serialized."""
        return serialize(self._attributes)

    # Writes

    def _write(self, store: dict[str, Any], path: str, value: Any) -> None:
        binding = self._context.binding
        head, *rest = split_path(path)
        if not rest:
            binding.set(store, head, value)
            return

        nested = self._nested(store, path)
        if nested is not None:
            record, below = nested
            record.set(below, value)
            return

        parent = get_path(store, split_path(path)[:-1])
        if isinstance(parent, MutableMapping | MutableSequence):
            binding.set(parent, rest[-1], value)
            return

        container = store.get(head)
        if not isinstance(container, MutableMapping):
            container = {}
        set_path(container, rest, value)
        binding.set(store, head, container)

    def register_attribute(self, attribute: str) -> None:
        """Allow attribute-style access to an attribute.

        Raises:
            ReservedAttributeError: If the name is used internally or is
                already a method or property of the class, eg. ``save``.
        """
        if attribute in RESERVED or hasattr(type(self), attribute):
            raise ReservedAttributeError(attribute)
        self._registered.add(attribute)

    def set(self, attribute: str | Mapping[str, Any], value: Any = None) -> Any:
        """Set one attribute, or several from a mapping.

        Setting an attribute that was already defined to a different value
        emits ``change``. Setting it for the first time does not.

        Returns:
            The value that was set (after mutation when ``mutate_on_change``).
        """
        if isinstance(attribute, Mapping):
            for key, item in attribute.items():
                self.set(key, item)
            return None

        defined = self.has(attribute)
        if not defined:
            self.register_attribute(split_path(attribute)[0])

        previous = self.get(attribute)

        if self.get_option("mutate_on_change"):
            value = self.mutated(attribute, value)

        self._write(self._attributes, attribute, value)

        if defined and not deep_equal(previous, value):
            self.emit("change", {"attribute": attribute, "previous": previous, "value": value})
            if self.get_option("validate_on_change"):
                self._schedule_validation(attribute)

        return value

    def _schedule_validation(self, attribute: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop, not validating '%s' on change", attribute)
            return
        task = loop.create_task(self.validate_attribute(attribute))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def unset(self, attributes: str | Iterable[str] | None = None) -> None:
        """Restore attributes (all by default) to their declared defaults."""
        defaults = deep_copy(self.defaults())
        names = self.attribute_names() if attributes is None else _as_names(attributes)
        for name in names:
            if self.has(name):
                self._write(self._attributes, name, get_path(defaults, name))

    def assign(self, attributes: Mapping[str, Any]) -> None:
        """Set attributes merged over the defaults, then sync."""
        self.set({**deep_copy(self.defaults()), **attributes})
        self.sync()

    def mutated(self, attribute: str, value: Any) -> Any:
        """Value after the attribute's mutation pipeline, without storing it."""
        return self._mutations.apply(attribute, value)

    def mutate(self, attributes: str | Iterable[str] | None = None) -> None:
        """Apply mutations in place to the given attributes, or all of them."""
        names = self.attribute_names() if attributes is None else _as_names(attributes)
        for name in names:
            self._write(self._attributes, name, self.mutated(name, self.get(name)))

    def sync(self, attributes: str | Iterable[str] | None = None) -> None:
        """Copy active state into reference state, mutating first if configured."""
        if self.get_option("mutate_before_sync"):
            self.mutate(attributes)

        if attributes is None:
            self._context.binding.set(self, "_reference", deep_copy(self._attributes))
        else:
            for name in _as_names(attributes):
                self._write(self._reference, name, deep_copy(self.get(name)))

        self.emit("sync")

    def reset(self, attributes: str | Iterable[str] | None = None) -> None:
        """Copy reference state back into active state and clear errors."""
        if attributes is None:
            self._context.binding.set(self, "_attributes", deep_copy(self._reference))
        else:
            for name in _as_names(attributes):
                self._write(self._attributes, name, deep_copy(self.saved(name)))

        self.clear_errors()
        self.emit("reset")

    def changed(self) -> list[str]:
        """Names of attributes whose active value differs from the saved one.

        Empty when the record is clean.
        """
        return [
            name
            for name, value in self._attributes.items()
            if not deep_equal(value, self.saved(name))
        ]

    def clear_attributes(self) -> None:
        defaults = self.defaults()
        self._context.binding.set(self, "_attributes", deep_copy(defaults))
        self._context.binding.set(self, "_reference", deep_copy(defaults))

    def clear(self) -> None:
        """Restore defaults and clear errors and state flags."""
        self.clear_attributes()
        self.clear_errors()
        self.clear_state()

    def clone(self) -> Record:
        """Independent copy with the same state, options, context and aggregates."""
        clone = type(self)(options=self._options, context=self._context)
        clone.register_aggregate(self.aggregates)
        binding = self._context.binding
        binding.set(clone, "_attributes", deep_copy(self._attributes))
        binding.set(clone, "_reference", deep_copy(self._reference))
        clone._registered.update(self._registered)
        return clone

    # Aggregates

    def register_aggregate(self, aggregate: Aggregate | Iterable[Aggregate]) -> None:
        """Remember an aggregate (or several) so this record joins it when saved."""
        if isinstance(aggregate, list | tuple):
            for item in aggregate:
                self.register_aggregate(item)
            return
        if not isinstance(getattr(aggregate, "uid", None), Uid):
            raise TypeError("Aggregate is not valid")
        self._aggregates[aggregate.uid] = aggregate

    def unregister_aggregate(self, aggregate: Aggregate | Iterable[Aggregate]) -> None:
        if isinstance(aggregate, list | tuple):
            for item in aggregate:
                self.unregister_aggregate(item)
            return
        if not isinstance(getattr(aggregate, "uid", None), Uid):
            raise TypeError("Aggregate is not valid")
        self._aggregates.pop(aggregate.uid, None)

    def add_to_all_aggregates(self) -> None:
        for aggregate in self.aggregates:
            aggregate.add(self)

    def remove_from_all_aggregates(self) -> None:
        for aggregate in self.aggregates:
            aggregate.remove(self)

    # Validation

    def get_validation_rules(self, attribute: str) -> list[Rule]:
        rules = self._rules.get(attribute, [])
        if callable(rules):
            return [rules]
        return list(rules)

    async def validate_attribute(self, attribute: str) -> Any:
        """Validate one attribute and store its errors.

        Raises:
            AttributeNotDefinedError: If the attribute is not set.
        """
        return await self._engine.validate_attribute(attribute)

    async def validate(self, attributes: str | Sequence[str] | None = None) -> dict[str, Any]:
        """Validate attributes (all by default).

        Returns:
            Errors keyed by attribute, for invalid attributes only.

        Raises:
            TypeError: If ``attributes`` is not a string, list or None.
        """
        return await self._engine.validate(attributes)

    def set_attribute_errors(self, attribute: str, errors: Any) -> None:
        binding = self._context.binding
        if not errors:
            binding.delete(self._errors, attribute)
        else:
            binding.set(self._errors, attribute, list(errors) if isinstance(errors, list | tuple) else [errors])

    def set_errors(self, errors: Mapping[str, Any] | None) -> None:
        """Set errors per attribute; empty errors clear them all."""
        if not errors:
            self._context.binding.set(self, "_errors", {})
            return
        for attribute, attribute_errors in errors.items():
            self.set_attribute_errors(attribute, attribute_errors)

    def get_errors(self) -> dict[str, Any]:
        if self.get_option("use_first_error_only"):
            return {attribute: errors[0] for attribute, errors in self._errors.items()}
        return self._errors

    def clear_errors(self) -> None:
        self.set_errors({})
        self.set_state("fatal", False)

    # Requests

    def get_route_parameters(self) -> dict[str, Any]:
        return {**super().get_route_parameters(), **self._attributes}

    def should_patch(self) -> bool:
        return bool(self.get_option("patch"))

    def get_create_route(self) -> str:
        return self.get_route("create", "save")

    def get_patch_route(self) -> str:
        if self.routes().get("patch"):
            return self.get_route("patch")
        return self.get_route("update", "save")

    def get_update_route(self) -> str:
        if self.should_patch():
            return self.get_patch_route()
        return self.get_route("update", "save")

    def get_save_route(self) -> str:
        return self.get_create_route() if self.is_new() else self.get_update_route()

    def get_update_method(self) -> str:
        return self.get_patch_method() if self.should_patch() else super().get_update_method()

    def get_save_method(self) -> str:
        return self.get_create_method() if self.is_new() else self.get_update_method()

    def get_save_data(self) -> Any:
        """Request body for a save: only changed attributes when patching."""
        if self.is_existing() and self.should_patch():
            keep = {*self.changed(), self.get_option("identifier")}
            return serialize({name: value for name, value in self._attributes.items() if name in keep})
        return serialize(self._attributes)

    def parse_identifier(self, data: Any) -> Any:
        return data

    def is_valid_identifier(self, identifier: Any) -> bool:
        return isinstance(identifier, str | int | float) and not isinstance(identifier, bool) and identifier != ""

    def update(self, data: Any) -> None:
        """Apply a save response body.

        Empty data syncs the current state, a mapping is merged over the
        current attributes, and a scalar is taken as the new identifier.

        Raises:
            IdentifierConflictError: If a different identifier is already set
                and ``overwrite_identifier`` is off.
            ResponseError: If the data is none of the above.
        """
        if data is None or (isinstance(data, Mapping | list | tuple | str) and len(data) == 0):
            self.sync()
            return

        if isinstance(data, Mapping):
            self.assign({**self._attributes, **data})
            return

        if isinstance(data, str | int | float) and not isinstance(data, bool):
            identifier = self.parse_identifier(data)
            if self.is_valid_identifier(identifier):
                current = self.identifier()
                if current not in (None, "") and identifier != current:
                    if not self.get_option("overwrite_identifier"):
                        raise IdentifierConflictError(current, identifier)
                self.set(self.get_option("identifier"), identifier)
                self.sync()
                return

        raise ResponseError("Expected an empty response, object, or valid identifier")

    async def on_fetch(self) -> RequestOperation:
        # Already fetching, eg. a double click.
        if self.loading:
            return RequestOperation.SKIP
        self.set_state("loading", True)
        return RequestOperation.CONTINUE

    def on_fetch_success(self, response: Response) -> None:
        attributes = response.get_data()
        if not attributes:
            raise ResponseError("No data in fetch response", response)

        self.assign(attributes)
        self.set_state("fatal", False)
        self.set_state("loading", False)
        self.emit("fetch", {"error": None})

    def on_fetch_failure(self, error: BaseException, response: Response | None = None) -> None:
        self.set_state("fatal", True)
        self.set_state("loading", False)
        self.emit("fetch", {"error": error})

    async def on_save(self) -> RequestOperation:
        if self.saving:
            return RequestOperation.SKIP

        if not self.get_option("save_unchanged") and not self.changed():
            return RequestOperation.REDUNDANT

        self.set_state("saving", True)

        try:
            if self.get_option("mutate_before_save"):
                self.mutate()
            errors = await self.validate()
        except BaseException:
            self.set_state("saving", False)
            raise

        if errors:
            self.set_state("saving", False)
            raise ValidationError(dict(self.errors))

        return RequestOperation.CONTINUE

    def on_save_success(self, response: Response | None) -> None:
        was_new = self.is_new()

        self.clear_errors()

        if response is not None:
            self.update(response.get_data())

        self.set_state("saving", False)
        self.set_state("fatal", False)

        self.add_to_all_aggregates()

        self.emit("save", {"error": None})
        if response is not None:
            created = response.get_status() == 201 or (was_new and self.is_existing())
            self.emit("create" if created else "update", {"error": None})

    def on_save_validation_failure(self, error: BaseException, response: Response) -> None:
        errors = response.get_validation_errors()
        if not isinstance(errors, Mapping):
            self.on_fatal_save_failure(error, response)
            raise ResponseError("Validation errors must be an object", response)

        self.set_errors(errors)
        self.set_state("fatal", False)
        self.set_state("saving", False)

    def on_fatal_save_failure(self, error: BaseException, response: Response | None = None) -> None:
        self.clear_errors()
        self.set_state("fatal", True)
        self.set_state("saving", False)

    def on_save_failure(self, error: BaseException, response: Response | None = None) -> None:
        if response is not None and self.is_backend_validation_error(error):
            self.on_save_validation_failure(error, response)
        else:
            self.on_fatal_save_failure(error, response)

        self.emit("save", {"error": error})

    async def on_delete(self) -> RequestOperation:
        if self.deleting:
            return RequestOperation.SKIP
        self.set_state("deleting", True)
        return RequestOperation.CONTINUE

    def on_delete_success(self, response: Response | None) -> None:
        self.clear()
        self.remove_from_all_aggregates()

        self.set_state("deleting", False)
        self.set_state("fatal", False)
        self.emit("delete", {"error": None})

    def on_delete_failure(self, error: BaseException, response: Response | None = None) -> None:
        self.set_state("deleting", False)
        self.set_state("fatal", True)
        self.emit("delete", {"error": error})
