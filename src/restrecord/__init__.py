"""restrecord: active records and aggregates bound to a REST API.

Usage:
    from restrecord import Aggregate, Record, RecordContext, rules

    class Task(Record):
        def defaults(self):
            return {"id": None, "title": "", "done": False}

        def validation(self):
            return {"title": [rules.required]}

        def routes(self):
            return {"fetch": "/tasks/{id}", "save": "/tasks"}

    class Tasks(Aggregate):
        def options(self):
            return {"record": Task}

        def routes(self):
            return {"fetch": "/tasks"}

    context = RecordContext(transport=HttpxTransport(base_url="https://api.example.com"))
    tasks = Tasks(context=context)
    await tasks.fetch()
    tasks.first().title = "Renamed"
    await tasks.first().save()
"""

__version__ = "0.1.0"

# Core primitives
from restrecord.core import (
    AttributeNotDefinedError,
    EventEmitter,
    IdentifierConflictError,
    InvalidRecordError,
    MissingRouteError,
    MutationPipeline,
    RequestError,
    RequestOperation,
    ReservedAttributeError,
    ResponseError,
    RestRecordError,
    Uid,
    ValidationEngine,
    ValidationError,
    ValidationRule,
    deep_copy,
    deep_equal,
    get_messages,
    rule,
)
from restrecord.core.validation import rules

# Configuration
from restrecord.config import (
    AggregateOptions,
    RecordOptions,
    ResourceOptions,
    TransportSettings,
)

# HTTP
from restrecord.http import (
    HttpResponse,
    HttpxTransport,
    PatternRouteResolver,
    ProxyResponse,
    RequestDescriptor,
    Response,
    Transport,
)

# Records and aggregates
from restrecord.structures import (
    Aggregate,
    Binding,
    DirectBinding,
    Record,
    RecordContext,
    Resource,
    UidAllocator,
    get_default_context,
    set_default_context,
)

__all__ = [
    # Version
    "__version__",
    # Structures
    "Record",
    "Aggregate",
    "Resource",
    "RecordContext",
    "UidAllocator",
    "Binding",
    "DirectBinding",
    "get_default_context",
    "set_default_context",
    # Core
    "Uid",
    "RequestOperation",
    "EventEmitter",
    "MutationPipeline",
    "deep_copy",
    "deep_equal",
    # Validation
    "ValidationEngine",
    "ValidationRule",
    "rule",
    "rules",
    "get_messages",
    # Errors
    "RestRecordError",
    "RequestError",
    "ResponseError",
    "ValidationError",
    "IdentifierConflictError",
    "ReservedAttributeError",
    "InvalidRecordError",
    "AttributeNotDefinedError",
    "MissingRouteError",
    # Config
    "ResourceOptions",
    "RecordOptions",
    "AggregateOptions",
    "TransportSettings",
    # HTTP
    "Transport",
    "Response",
    "RequestDescriptor",
    "HttpResponse",
    "ProxyResponse",
    "HttpxTransport",
    "PatternRouteResolver",
]
