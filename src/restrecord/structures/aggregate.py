"""Aggregate: an ordered, deduplicated set of records.

Membership is tracked by record uid in a registry set, so adding the same
record twice is a no-op checked in constant time. Each member keeps a weak
back-reference to the aggregates it belongs to, so a deleted record can
leave all of them and a saved record can join them.

Bulk save and delete requests fan out to the members: the records in flight
are the ones whose own preflight marked them ``saving``/``deleting``, in
member order, and list responses are matched to them by position.

Usage:
    class Tasks(Aggregate):
        def options(self):
            return {"record": Task}

        def routes(self):
            return {"fetch": "/tasks", "save": "/tasks/bulk", "delete": "/tasks"}

    tasks = Tasks()
    await tasks.page(1).fetch()   # appends page 1, moves to page 2
    tasks.add({"title": "New"})
    await tasks.save()
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from typing import Any, ClassVar, TypeAlias

from pydantic import BaseModel

from restrecord.config.options import AggregateOptions
from restrecord.core.cloning import deep_copy, deep_equal
from restrecord.core.errors import InvalidRecordError, ResponseError, ValidationError
from restrecord.core.identity import Uid
from restrecord.core.paths import get_path
from restrecord.core.types import RequestOperation
from restrecord.http.protocol import Response
from restrecord.http.responses import ProxyResponse
from restrecord.structures.base import Resource
from restrecord.structures.context import RecordContext
from restrecord.structures.record import Record

logger = logging.getLogger(__name__)

LAST_PAGE = 0

Where: TypeAlias = Callable[[Record], Any] | Mapping[str, Any]


def _records_from(source: Mapping[Any, Record] | Iterable[Any]) -> list[Any]:
    if isinstance(source, Mapping):
        return list(source.values())
    return list(source)


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class Aggregate(Resource):
    """A collection of records with bulk requests and pagination.

    Args:
        records: Initial members (records, mappings, or a mapping of either).
        options: Aggregate options, see ``AggregateOptions``.
        attributes: Aggregate-level attributes, merged over ``defaults()``.
        context: Transport, uid allocator and binding.
    """

    options_class: ClassVar[type[AggregateOptions]] = AggregateOptions

    records: list[Record]

    def __init__(
        self,
        records: Mapping[Any, Any] | Iterable[Any] | None = None,
        options: Mapping[str, Any] | BaseModel | None = None,
        attributes: Mapping[str, Any] | None = None,
        *,
        context: RecordContext | None = None,
    ) -> None:
        super().__init__(options, context=context)

        self._set_field("records", [])
        self._attributes: dict[str, Any] = {}
        self._registry: set[Uid] = set()
        self._page: int | None = None

        self.set({**deep_copy(self.defaults()), **(attributes or {})})

        if records:
            self.add(_records_from(records))

        self.boot()

    def _set_field(self, name: str, value: Any) -> None:
        self._context.binding.set(self, name, value)

    # Attributes

    def defaults(self) -> dict[str, Any]:
        """Aggregate-level attributes and their default values."""
        return {}

    def get(self, path: str, fallback: Any = None) -> Any:
        return get_path(self._attributes, path, fallback)

    def set(self, attribute: str | Mapping[str, Any], value: Any = None) -> None:
        if isinstance(attribute, Mapping):
            for key, item in attribute.items():
                self.set(key, item)
            return
        self._context.binding.set(self._attributes, attribute, value)

    def get_attributes(self) -> dict[str, Any]:
        return self._attributes

    # Membership

    def record_class(self) -> type[Record]:
        return self.get_option("record") or Record

    def create_record(self, attributes: Mapping[str, Any]) -> Record:
        """Materialize plain data as a record of the configured class."""
        return self.record_class()(attributes, context=self._context)

    @staticmethod
    def is_record(candidate: Any) -> bool:
        return isinstance(candidate, Record)

    def has_record_in_registry(self, record: Record) -> bool:
        return record.uid in self._registry

    def add(self, record: Record | Mapping[str, Any] | Sequence[Any]) -> Any:
        """Add a record, plain data, or a list of either.

        Returns:
            The added record, None if it was already a member, or a list of
            the records actually added when given a list.

        Raises:
            InvalidRecordError: If given anything else.
        """
        if isinstance(record, list | tuple):
            added = (self.add(item) for item in record)
            return [item for item in added if item is not None]

        if isinstance(record, Mapping):
            return self.add(self.create_record(record))

        if not self.is_record(record):
            raise InvalidRecordError("Expected a record, mapping, or list of either")

        if self.has_record_in_registry(record):
            return None

        self.records.append(record)
        self._set_field("records", self.records)
        self.on_add(record)

        # Not loading once anything is added.
        self.set_state("loading", False)
        return record

    def on_add(self, record: Record) -> None:
        record.register_aggregate(self)
        self._registry.add(record.uid)
        self.emit("add", {"record": record})

    def on_remove(self, record: Record) -> None:
        record.unregister_aggregate(self)
        self._registry.discard(record.uid)
        self.emit("remove", {"record": record})

    def _remove_at(self, index: int) -> Record | None:
        if index < 0:
            return None
        record = self.records.pop(index)
        self._set_field("records", self.records)
        self.on_remove(record)
        return record

    def remove(self, record: Record | Where | Sequence[Any]) -> Any:
        """Remove a record, a list of them, or every record matching a filter.

        Returns:
            The removed record (None if it was not a member), or a list of
            removed records for lists and filters.

        Raises:
            InvalidRecordError: If given None or something that is not a record.
        """
        if record is None:
            raise InvalidRecordError("Expected a callable, mapping, list, or record to remove")

        if isinstance(record, Mapping) or (callable(record) and not self.is_record(record)):
            return self.remove(self.where(record))

        if isinstance(record, list | tuple):
            removed = (self.remove(item) for item in record)
            return [item for item in removed if item is not None]

        if not self.is_record(record):
            raise InvalidRecordError("Record to remove is not a valid record")

        return self._remove_at(self.index_of(record))

    def clear_records(self) -> None:
        records = self.records
        self._set_field("records", [])
        for record in records:
            self.on_remove(record)

    def clear(self) -> None:
        self.clear_records()
        self.clear_state()

    def replace(self, records: Mapping[Any, Any] | Iterable[Any]) -> None:
        """Replace every member."""
        self.clear_records()
        self.add(_records_from(records))

    # Queries

    @staticmethod
    def _matcher(where: Where) -> Callable[[Record], bool]:
        if isinstance(where, Mapping):
            return lambda record: all(deep_equal(record.get(key), value) for key, value in where.items())
        return lambda record: bool(where(record))

    def index_of(self, record: Record | Where) -> int:
        """Position of a record (or of the first match), -1 if none."""
        if self.is_record(record):
            if not self.has_record_in_registry(record):
                return -1
            uid = record.uid
            return next((i for i, item in enumerate(self.records) if item.uid == uid), -1)

        matches = self._matcher(record)
        return next((i for i, item in enumerate(self.records) if matches(item)), -1)

    def has(self, record: Record | Where) -> bool:
        return self.index_of(record) >= 0

    def find(self, where: Where) -> Record | None:
        matches = self._matcher(where)
        return next((record for record in self.records if matches(record)), None)

    def where(self, where: Where) -> list[Record]:
        matches = self._matcher(where)
        return [record for record in self.records if matches(record)]

    def filter(self, where: Where) -> Aggregate:
        """A clone holding only the matching records."""
        return self.clone(self.where(where))

    def map(self, callback: Callable[[Record], Any]) -> list[Any]:
        return [callback(record) for record in self.records]

    def reduce(self, callback: Callable[[Any, Record], Any], *initial: Any) -> Any:
        """Fold the members, starting from the first member when no initial is given."""
        records = iter(self.records)
        result = initial[0] if initial else next(records, None)
        for record in records:
            result = callback(result, record)
        return result

    @staticmethod
    def _value_of(key: str | Callable[[Record], Any]) -> Callable[[Record], Any]:
        if callable(key):
            return key
        return lambda record: record.get(key)

    def sum(self, key: str | Callable[[Record], Any]) -> Any:
        value = self._value_of(key)
        return sum(value(record) or 0 for record in self.records)

    def count(self, key: str | Callable[[Record], Any]) -> dict[Any, int]:
        """Number of members per value of an attribute or callback."""
        value = self._value_of(key)
        return dict(Counter(value(record) for record in self.records))

    def sort(self, key: str | Callable[[Record], Any], reverse: bool = False) -> None:
        self._set_field("records", sorted(self.records, key=self._value_of(key), reverse=reverse))

    def first(self) -> Record | None:
        return self.records[0] if self.records else None

    def last(self) -> Record | None:
        return self.records[-1] if self.records else None

    def shift(self) -> Record | None:
        """Remove and return the first member."""
        return self._remove_at(0) if self.records else None

    def pop(self) -> Record | None:
        """Remove and return the last member."""
        return self._remove_at(len(self.records) - 1) if self.records else None

    def size(self) -> int:
        return len(self.records)

    def is_empty(self) -> bool:
        return not self.records

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self.records))

    def __contains__(self, record: object) -> bool:
        return self.is_record(record) and self.has_record_in_registry(record)  # type: ignore[arg-type]

    def to_list(self) -> list[Record]:
        return list(self.records)

    def to_json(self) -> list[Any]:
        return [record.to_json() for record in self.records]

    def clone(self, records: Iterable[Record] | None = None) -> Aggregate:
        """A new aggregate with the same members (or the given ones), options and attributes."""
        return type(self)(
            list(self.records if records is None else records),
            self._options,
            deep_copy(self._attributes),
            context=self._context,
        )

    # Member state

    def sync(self) -> None:
        for record in self.records:
            record.sync()

    def reset(self, attributes: str | Iterable[str] | None = None) -> None:
        for record in self.records:
            record.reset(attributes)

    async def validate(self, attributes: Any = None) -> list[Any]:
        """Validate every member concurrently.

        Returns:
            Each member's errors by position, or an empty list if all are valid.
        """
        results = await asyncio.gather(*(record.validate(attributes) for record in self.records))
        return list(results) if any(results) else []

    def get_errors(self) -> list[Any]:
        return [record.errors for record in self.records]

    def clear_errors(self) -> None:
        for record in self.records:
            record.clear_errors()

    def get_saving_records(self) -> list[Record]:
        return [record for record in self.records if record.saving]

    def get_deleting_records(self) -> list[Record]:
        return [record for record in self.records if record.deleting]

    def get_identifiers(self, records: Iterable[Record] | None = None) -> list[Any]:
        return [record.identifier() for record in (self.records if records is None else records)]

    # Pagination

    def page(self, page: int | None) -> Aggregate:
        """Enable pagination at a page (at least 1), or disable it with None."""
        if page is None:
            self._page = None
        else:
            self._page = max(1, _safe_int(page))
        return self

    def get_page(self) -> int | None:
        return self._page

    def is_paginated(self) -> bool:
        return self._page is not None

    def is_last_page(self) -> bool:
        return self._page == LAST_PAGE

    def get_pagination_query(self) -> dict[str, Any]:
        return {"page": self._page}

    def apply_pagination(self, records: list[Any]) -> None:
        # An empty page means there is nothing further to fetch.
        if not records:
            self._page = LAST_PAGE
            return
        self._page = (self._page or 0) + 1
        self.add(records)

    # Requests

    def get_route_parameters(self) -> dict[str, Any]:
        return {**super().get_route_parameters(), **self._attributes, "page": self._page}

    def get_fetch_query(self) -> dict[str, Any]:
        if self.is_paginated():
            return self.get_pagination_query()
        return super().get_fetch_query()

    def get_save_data(self) -> list[Any]:
        return [record.get_save_data() for record in self.get_saving_records()]

    def get_delete_query_identifier_key(self) -> str:
        return self.get_option("delete_query_key")

    def get_delete_body(self) -> Any:
        if self.get_option("use_delete_body"):
            return self.get_identifiers(self.get_deleting_records())
        return None

    def get_delete_query(self) -> dict[str, Any]:
        if self.get_option("use_delete_body"):
            return {}
        identifiers = self.get_identifiers(self.get_deleting_records())
        return {self.get_delete_query_identifier_key(): ",".join(str(identifier) for identifier in identifiers)}

    def get_records_from_response(self, response: Response | None) -> Any:
        """Record data in a response, or None when the response has none."""
        if response is None:
            return None
        data = response.get_data()
        if data is None or (isinstance(data, Mapping | str) and not data):
            return None
        # Paginated responses may wrap the records in "data".
        if self.is_paginated() and isinstance(data, Mapping):
            return data.get("data", data)
        return data

    async def on_fetch(self) -> RequestOperation:
        if self.is_paginated() and self.is_last_page():
            return RequestOperation.SKIP
        if self.loading:
            return RequestOperation.SKIP
        self.set_state("loading", True)
        return RequestOperation.CONTINUE

    def on_fetch_success(self, response: Response) -> None:
        records = self.get_records_from_response(response)
        if not isinstance(records, list):
            raise ResponseError("Expected a list of records in fetch response", response)

        if self.is_paginated():
            self.apply_pagination(records)
        else:
            self.replace(records)

        self.set_state("loading", False)
        self.set_state("fatal", False)
        self.emit("fetch", {"error": None})

    def on_fetch_failure(self, error: BaseException, response: Response | None = None) -> None:
        self.clear_errors()
        self.set_state("fatal", True)
        self.set_state("loading", False)
        self.emit("fetch", {"error": error})

    async def on_save(self) -> RequestOperation:
        if self.saving:
            return RequestOperation.SKIP

        records = list(self.records)
        results = await asyncio.gather(
            *(record.on_save() for record in records), return_exceptions=True
        )

        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            # No member stays in flight once any preflight failed.
            for record, result in zip(records, results, strict=True):
                if result is RequestOperation.CONTINUE or isinstance(result, BaseException):
                    record.set_state("saving", False)
            for failure in failures:
                if not isinstance(failure, ValidationError):
                    raise failure
            raise ValidationError(self.get_errors())

        if not self.get_saving_records():
            return RequestOperation.REDUNDANT

        self.set_state("saving", True)
        return RequestOperation.CONTINUE

    def on_save_success(self, response: Response | None) -> None:
        saved = self.get_records_from_response(response)
        saving = self.get_saving_records()
        status = response.get_status() if response is not None else 200
        headers = response.get_headers() if response is not None else {}

        if saved is None:
            for record in saving:
                record.on_save_success(ProxyResponse(status, None, headers))
        else:
            if not isinstance(saved, list):
                raise ResponseError("Response data must be a list or empty", response)

            # Items are matched to saving members by position.
            if len(saved) != len(saving):
                raise ResponseError("Expected the same number of records in the response", response)

            for record, data in zip(saving, saved, strict=True):
                record.on_save_success(ProxyResponse(200, data, headers))

        self.set_state("saving", False)
        self.set_state("fatal", False)
        self.emit("save", {"error": None})

    def apply_validation_error_list(self, errors: list[Any], response: Response | None = None) -> None:
        records = self.get_saving_records()
        if len(errors) != len(records):
            raise ResponseError("Array of errors must equal the number of records", response)

        for record, record_errors in zip(records, errors, strict=True):
            record.set_errors(record_errors)
            record.set_state("saving", False)
            record.set_state("fatal", False)

    def apply_validation_error_mapping(self, errors: Mapping[Any, Any]) -> None:
        lookup = {str(record.identifier()): record for record in self.records}
        for identifier, record_errors in errors.items():
            record = lookup.get(str(identifier))
            if record is None:
                logger.warning("Ignoring validation errors for unknown identifier %r", identifier)
                continue
            record.set_errors(record_errors)

    def set_errors(self, errors: Any, response: Response | None = None) -> None:
        """Apply errors as a list by saving position, or a mapping by identifier."""
        if isinstance(errors, list):
            self.apply_validation_error_list(errors, response)
        elif isinstance(errors, Mapping):
            self.apply_validation_error_mapping(errors)

    def on_save_validation_failure(self, error: BaseException, response: Response) -> None:
        errors = response.get_validation_errors()
        if not isinstance(errors, Mapping | list):
            self.on_fatal_save_failure(error, response)
            raise ResponseError("Validation errors must be an object or array", response)

        try:
            self.set_errors(errors, response)
        except ResponseError:
            self.on_fatal_save_failure(error, response)
            raise

        for record in self.get_saving_records():
            record.set_state("saving", False)
            record.set_state("fatal", False)

        self.set_state("fatal", False)
        self.set_state("saving", False)

    def on_fatal_save_failure(self, error: BaseException, response: Response | None = None) -> None:
        for record in self.get_saving_records():
            record.on_fatal_save_failure(error, response)
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

        await asyncio.gather(*(record.on_delete() for record in self.records))

        if not self.get_deleting_records():
            return RequestOperation.REDUNDANT

        self.set_state("deleting", True)
        return RequestOperation.CONTINUE

    def on_delete_success(self, response: Response | None) -> None:
        self.set_state("deleting", False)
        self.set_state("fatal", False)

        for record in self.get_deleting_records():
            record.on_delete_success(response)

        self.emit("delete", {"error": None})

    def on_delete_failure(self, error: BaseException, response: Response | None = None) -> None:
        self.set_state("fatal", True)
        self.set_state("deleting", False)

        for record in self.get_deleting_records():
            record.on_delete_failure(error, response)

        self.emit("delete", {"error": error})
