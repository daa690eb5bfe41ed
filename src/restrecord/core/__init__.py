"""Core functionalities: identity, paths, cloning, events, mutation, validation.

Architecture Note:
    core/ holds building blocks with no knowledge of requests or transports.
    Records, aggregates and the request lifecycle live in structures/.
"""

from restrecord.core.cloning import Cloneable, Serializable, deep_copy, deep_equal, serialize
from restrecord.core.errors import (
    AttributeNotDefinedError,
    IdentifierConflictError,
    InvalidRecordError,
    MissingRouteError,
    RequestError,
    ReservedAttributeError,
    ResponseError,
    RestRecordError,
    ValidationError,
)
from restrecord.core.events import EventEmitter
from restrecord.core.identity import Uid
from restrecord.core.mutation import MutationPipeline, compose
from restrecord.core.paths import get_path, has_path, set_path, split_path
from restrecord.core.types import RequestOperation
from restrecord.core.validation import ValidationEngine, ValidationRule, get_messages, rule

__all__ = [
    # Types
    "RequestOperation",
    # Identity
    "Uid",
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
    # Data helpers
    "Cloneable",
    "Serializable",
    "deep_copy",
    "deep_equal",
    "serialize",
    "get_path",
    "has_path",
    "set_path",
    "split_path",
    # Events
    "EventEmitter",
    # Mutation
    "MutationPipeline",
    "compose",
    # Validation
    "ValidationEngine",
    "ValidationRule",
    "get_messages",
    "rule",
]
