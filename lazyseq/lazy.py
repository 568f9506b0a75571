import itertools
import logging
from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

from .errors import SequenceConsumedError
from .models import PullResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")
X = TypeVar("X")


class SyncSequence(Generic[T]):
    """
    A chainable, lazy wrapper around a synchronous iterator.

    Every combinator takes ownership of the receiver and returns a new
    SyncSequence that pulls from it on demand; nothing is computed until a
    terminal operation (collect, reduce, count, for_each) or plain iteration
    asks for an element. Infinite sources are fine as long as something
    downstream bounds them, usually take().
    """

    def __init__(self, source: Iterable[T]):
        self._inner: Iterator[T] = iter(source)
        self._exhausted = False        # latched on the first StopIteration
        self._claimed_by: Optional[str] = None

    @classmethod
    def repeat_with(cls, func: Callable[[int], T]) -> "SyncSequence[T]":
        """Never ending sequence of func(0), func(1), func(2), ..."""
        return cls(func(index) for index in itertools.count())

    # --------- chainable operators (lazy) ----------
    def filter(self, predicate: Callable[[T], bool]) -> "SyncSequence[T]":
        def _filter(items):
            for item in items:
                if predicate(item):
                    yield item
        return self._derive("filter", _filter)

    def filter_map(self, func: Callable[[T], Optional[U]]) -> "SyncSequence[U]":
        """
        Map every item and keep only the results that are not None.

        None is the "absent" marker, so func must never produce None as a
        real value.
        """
        def _filter_map(items):
            for item in items:
                mapped = func(item)
                if mapped is not None:
                    yield mapped
        return self._derive("filter_map", _filter_map)

    def map(self, func: Callable[[T], U]) -> "SyncSequence[U]":
        def _map(items):
            for item in items:
                yield func(item)
        return self._derive("map", _map)

    def chain(self, *others: Iterable[T]) -> "SyncSequence[T]":
        """Yield everything from this sequence, then from each of others in order."""
        # Wrapped arguments change hands now; plain iterables are only iter()'d when reached
        sources = _claim_arguments(self, others, "chain")

        def _chain(items):
            yield from items
            for source in sources:
                yield from source
        return self._derive("chain", _chain)

    def zip(self, right: Iterable[U]) -> "SyncSequence[Tuple[T, U]]":
        """
        Pair items with those of right in lock-step.

        Each step pulls the left side, then the right side, and stops as soon
        as either reports exhaustion.
        """
        right_source = _claim_arguments(self, [right], "zip")[0]

        def _zip(items):
            right_items = iter(right_source)
            while True:
                left_done, left = _next_or_done(items)
                right_done, right_item = _next_or_done(right_items)
                if left_done or right_done:
                    return
                yield left, right_item
        return self._derive("zip", _zip)

    def enumerate(self) -> "SyncSequence[Tuple[int, T]]":
        def _enumerate(items):
            index = 0
            for item in items:
                yield index, item
                index += 1
        return self._derive("enumerate", _enumerate)

    def take(self, limit: int) -> "SyncSequence[T]":
        """At most limit items; the parent is never pulled past the limit."""
        limit = int(limit)
        if limit < 0:
            raise ValueError("take() limit must be >= 0")

        def _take(items):
            if limit == 0:
                return
            taken = 0
            for item in items:
                yield item
                taken += 1
                if taken >= limit:
                    return
        return self._derive("take", _take)

    def skip(self, n: int) -> "SyncSequence[T]":
        n = int(n)
        if n < 0:
            raise ValueError("skip() count must be >= 0")

        def _skip(items):
            skipped = 0
            for item in items:
                if skipped < n:
                    skipped += 1
                    continue
                yield item
        return self._derive("skip", _skip)

    def flat(self: "SyncSequence[Iterable[U]]") -> "SyncSequence[U]":
        """Flatten one level; every item must itself be iterable."""
        def _flat(items):
            for inner in items:
                yield from inner
        return self._derive("flat", _flat)

    # --------- terminal operations ----------
    def collect(self) -> List[T]:
        result = list(self._claim("collect"))
        logger.debug("collect() finished after %d items", len(result))
        return result

    def reduce(self, func: Callable[[X, T], X], initial: X) -> X:
        """Left fold: func(...func(func(initial, a), b)..., z)."""
        result = initial
        seen = 0
        for item in self._claim("reduce"):
            result = func(result, item)
            seen += 1
        logger.debug("reduce() finished after %d items", seen)
        return result

    def count(self) -> int:
        count = 0
        for _ in self._claim("count"):
            count += 1
        logger.debug("count() finished: %d", count)
        return count

    def for_each(self, func: Callable[[T], Any]) -> None:
        seen = 0
        for item in self._claim("for_each"):
            func(item)
            seen += 1
        logger.debug("for_each() finished after %d items", seen)

    # --------- iterator protocol ----------
    def __iter__(self) -> "SyncSequence[T]":
        return self

    def __next__(self) -> T:
        self._ensure_unclaimed()
        return self._advance()

    def pull(self) -> PullResult:
        """Tagged form of next(): PullResult.of(item) or PullResult.done()."""
        try:
            return PullResult.of(next(self))
        except StopIteration:
            return PullResult.done()

    # --------- helpers ----------
    def _advance(self) -> T:
        if self._exhausted:
            raise StopIteration
        try:
            return next(self._inner)
        except StopIteration:
            self._exhausted = True
            raise

    def _claim(self, operation: str) -> Iterator[T]:
        """Hand exclusive pull rights to operation; the wrapper refuses all later use."""
        self._ensure_unclaimed()
        self._claimed_by = operation
        logger.debug("%s() took ownership of sequence %#x", operation, id(self))
        return self._release()

    def _ensure_unclaimed(self):
        if self._claimed_by is not None:
            raise SequenceConsumedError(self._claimed_by)

    def _release(self) -> Iterator[T]:
        while True:
            try:
                item = self._advance()
            except StopIteration:
                return
            yield item

    def _derive(self, operation: str, transform: Callable[[Iterator[T]], Iterator[U]]) -> "SyncSequence[U]":
        return SyncSequence(transform(self._claim(operation)))


def _claim_argument(other: Iterable[T], operation: str) -> Iterable[T]:
    if isinstance(other, SyncSequence):
        return other._claim(operation)
    return other


def _claim_arguments(receiver: SyncSequence, others: Iterable[Iterable[T]], operation: str) -> List[Iterable[T]]:
    """Claim wrapped arguments, but only once the receiver and all of them are known to be free."""
    others = list(others)
    receiver._ensure_unclaimed()
    for other in others:
        if isinstance(other, SyncSequence):
            other._ensure_unclaimed()
    return [_claim_argument(other, operation) for other in others]


def _next_or_done(items: Iterator[T]) -> Tuple[bool, Any]:
    try:
        return False, next(items)
    except StopIteration:
        return True, None
