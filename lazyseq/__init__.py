"""Lazy, chainable wrappers for synchronous and asynchronous sequences."""

from .errors import SequenceError, SequenceConsumedError
from .lazy import SyncSequence
from .lazy_async import AsyncSequence
from .models import PullResult

__version__ = "0.1.0"

__all__ = [
    "SyncSequence",
    "AsyncSequence",
    "PullResult",
    "SequenceError",
    "SequenceConsumedError",
]
