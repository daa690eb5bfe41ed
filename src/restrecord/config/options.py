"""Per-instance options for records and aggregates.

Options come from three layers, highest precedence first: the constructor
argument, the instance's ``options()`` hook, and the class defaults below.
``methods`` merges key by key so one verb can be overridden alone. Names are
snake_case, and camelCase aliases are accepted.

Usage:
    options = merge_options(RecordOptions, {"patch": True}, {"methods": {"patch": "PUT"}})
    options.patch             # True
    options.methods["fetch"]  # "GET"
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeAlias, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from restrecord.http.routes import DEFAULT_ROUTE_PARAMETER_PATTERN

OptionsLayer: TypeAlias = Mapping[str, Any] | BaseModel | None


def default_methods() -> dict[str, str]:
    """HTTP method per request kind."""
    return {
        "fetch": "GET",
        "save": "POST",
        "update": "POST",
        "create": "POST",
        "patch": "PATCH",
        "delete": "DELETE",
    }


class ResourceOptions(BaseModel):
    """Options shared by records and aggregates.

    Attributes:
        methods: HTTP method per request kind.
        route_parameter_pattern: Regex matching route placeholders; group 1 is the name.
        validation_error_status: Response status that means "validation failed".
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    methods: dict[str, str] = Field(default_factory=default_methods)
    route_parameter_pattern: str = DEFAULT_ROUTE_PARAMETER_PATTERN
    validation_error_status: int = 422


class RecordOptions(ResourceOptions):
    """Record options.

    Attributes:
        identifier: Attribute that identifies a saved record.
        overwrite_identifier: Allow a save response to replace an existing identifier.
        patch: Send only changed attributes (with the PATCH method) on update.
        save_unchanged: Send a save request even if nothing changed.
        use_first_error_only: Keep only the first validation error per attribute.
        validate_on_change: Validate an attribute whenever it changes.
        validate_recursively: Include nested records/aggregates in validation.
        mutate_on_change: Mutate an attribute whenever it is set.
        mutate_before_sync: Mutate before copying active state to reference.
        mutate_before_save: Mutate before a save request is built.
    """

    identifier: str = "id"
    overwrite_identifier: bool = False
    patch: bool = False
    save_unchanged: bool = True
    use_first_error_only: bool = False
    validate_on_change: bool = False
    validate_recursively: bool = True
    mutate_on_change: bool = False
    mutate_before_sync: bool = True
    mutate_before_save: bool = True


class AggregateOptions(ResourceOptions):
    """Aggregate options.

    Attributes:
        record: Record class used to materialize plain data.
        use_delete_body: Send bulk delete identifiers in the body, else in the query.
        delete_query_key: Query parameter holding comma-joined identifiers.
    """

    record: type | None = None
    use_delete_body: bool = True
    delete_query_key: str = "id"


T = TypeVar("T", bound=ResourceOptions)


def _as_dict(options_cls: type[T], layer: OptionsLayer) -> dict[str, Any]:
    if layer is None:
        return {}
    if isinstance(layer, BaseModel):
        return layer.model_dump(exclude_unset=True)
    # Validating the partial layer rejects unknown names and resolves aliases.
    return options_cls.model_validate(dict(layer)).model_dump(exclude_unset=True)


def merge_options(options_cls: type[T], *layers: OptionsLayer) -> T:
    """Merge option layers over the class defaults.

    Args:
        options_cls: Options model to produce.
        *layers: Mappings or models, highest precedence first.

    Returns:
        A validated options instance.

    Raises:
        pydantic.ValidationError: If a layer has an unknown option or bad value.
    """
    merged = options_cls().model_dump()
    for layer in reversed(layers):
        values = _as_dict(options_cls, layer)
        methods = values.pop("methods", None)
        if methods:
            merged["methods"] = {**merged["methods"], **methods}
        merged.update(values)
    return options_cls.model_validate(merged)
