"""Configuration: per-instance option models and transport settings.

Usage:
    from restrecord.config import RecordOptions, TransportSettings

    settings = TransportSettings(base_url="https://api.example.com")
"""

from restrecord.config.options import (
    AggregateOptions,
    RecordOptions,
    ResourceOptions,
    default_methods,
    merge_options,
)
from restrecord.config.settings import TransportSettings

__all__ = [
    "ResourceOptions",
    "RecordOptions",
    "AggregateOptions",
    "default_methods",
    "merge_options",
    "TransportSettings",
]
