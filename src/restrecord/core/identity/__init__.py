"""Identity functionality: immutable uid tokens."""

from restrecord.core.identity.models import Uid

__all__ = [
    "Uid",
]
