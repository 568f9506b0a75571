import asyncio
import itertools
import logging
from collections import abc
from typing import (Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Generic, Iterable,
                    List, Optional, Tuple, TypeVar, Union)

from .errors import SequenceConsumedError
from .models import PullResult

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")
X = TypeVar("X")

AnyIterable = Union[AsyncIterable[T], Iterable[T]]


class AsyncSequence(Generic[T]):
    """
    A chainable, lazy wrapper around an asynchronous iterator.

    Same operators and ownership rules as SyncSequence, except that every pull
    is awaited and terminal operations are coroutines. map, filter and
    filter_map await their function's result; the *_sync variants call a plain
    function. Elements still flow strictly one at a time: the only place two
    pulls are in flight together is the pair of pulls made by zip().

    Plain iterables are accepted wherever an async iterable is expected and are
    adapted to an async iterator that never suspends.
    """

    def __init__(self, source: AnyIterable[T]):
        self._inner: AsyncIterator[T] = _as_async_iterable(source).__aiter__()
        self._exhausted = False        # latched on the first StopAsyncIteration
        self._claimed_by: Optional[str] = None

    @classmethod
    def repeat_with(cls, func: Callable[[int], T]) -> "AsyncSequence[T]":
        """Never ending sequence of func(0), func(1), func(2), ..."""
        async def _repeat():
            for index in itertools.count():
                yield func(index)
        return cls(_repeat())

    # --------- chainable operators (lazy) ----------
    def filter(self, predicate: Callable[[T], Awaitable[bool]]) -> "AsyncSequence[T]":
        async def _filter(items):
            async for item in items:
                if await predicate(item):
                    yield item
        return self._derive("filter", _filter)

    def filter_sync(self, predicate: Callable[[T], bool]) -> "AsyncSequence[T]":
        async def _filter_sync(items):
            async for item in items:
                if predicate(item):
                    yield item
        return self._derive("filter_sync", _filter_sync)

    def filter_map(self, func: Callable[[T], Awaitable[Optional[U]]]) -> "AsyncSequence[U]":
        """Await func for every item and keep the results that are not None."""
        async def _filter_map(items):
            async for item in items:
                mapped = await func(item)
                if mapped is not None:
                    yield mapped
        return self._derive("filter_map", _filter_map)

    def filter_map_sync(self, func: Callable[[T], Optional[U]]) -> "AsyncSequence[U]":
        async def _filter_map_sync(items):
            async for item in items:
                mapped = func(item)
                if mapped is not None:
                    yield mapped
        return self._derive("filter_map_sync", _filter_map_sync)

    def map(self, func: Callable[[T], Awaitable[U]]) -> "AsyncSequence[U]":
        """
        Map every item through func and await the result.

        Use map_sync() when func returns a plain value.
        """
        async def _map(items):
            async for item in items:
                yield await func(item)
        return self._derive("map", _map)

    def map_sync(self, func: Callable[[T], U]) -> "AsyncSequence[U]":
        async def _map_sync(items):
            async for item in items:
                yield func(item)
        return self._derive("map_sync", _map_sync)

    def chain(self, *others: AnyIterable[T]) -> "AsyncSequence[T]":
        sources = _claim_arguments(self, others, "chain")

        async def _chain(items):
            async for item in items:
                yield item
            for source in sources:
                async for item in source:
                    yield item
        return self._derive("chain", _chain)

    def zip(self, right: AnyIterable[U]) -> "AsyncSequence[Tuple[T, U]]":
        """
        Pair items with those of right in lock-step.

        Both pulls of a step are started together and joined before the pair
        is produced. The first exhaustion on either side ends the sequence; if
        a pull fails, its error is raised, the left side's first.
        """
        right_source = _claim_arguments(self, [right], "zip")[0]

        async def _zip(items):
            right_items = right_source.__aiter__()
            while True:
                left, right_item = await asyncio.gather(
                    _pull_or_done(items),
                    _pull_or_done(right_items),
                    return_exceptions=True,
                )
                for outcome in (left, right_item):
                    if isinstance(outcome, BaseException):
                        raise outcome
                if left[0] or right_item[0]:
                    return
                yield left[1], right_item[1]
        return self._derive("zip", _zip)

    def enumerate(self) -> "AsyncSequence[Tuple[int, T]]":
        async def _enumerate(items):
            index = 0
            async for item in items:
                yield index, item
                index += 1
        return self._derive("enumerate", _enumerate)

    def take(self, limit: int) -> "AsyncSequence[T]":
        """At most limit items; the parent is never pulled past the limit."""
        limit = int(limit)
        if limit < 0:
            raise ValueError("take() limit must be >= 0")

        async def _take(items):
            if limit == 0:
                return
            taken = 0
            async for item in items:
                yield item
                taken += 1
                if taken >= limit:
                    return
        return self._derive("take", _take)

    def skip(self, n: int) -> "AsyncSequence[T]":
        n = int(n)
        if n < 0:
            raise ValueError("skip() count must be >= 0")

        async def _skip(items):
            skipped = 0
            async for item in items:
                if skipped < n:
                    skipped += 1
                    continue
                yield item
        return self._derive("skip", _skip)

    def flat(self: "AsyncSequence[AnyIterable[U]]") -> "AsyncSequence[U]":
        """Flatten one level; items may be sync or async iterables."""
        async def _flat(items):
            async for inner in items:
                async for item in _as_async_iterable(inner):
                    yield item
        return self._derive("flat", _flat)

    # --------- terminal operations ----------
    async def collect(self) -> List[T]:
        result = [item async for item in self._claim("collect")]
        logger.debug("collect() finished after %d items", len(result))
        return result

    async def reduce(self, func: Callable[[X, T], X], initial: X) -> X:
        """Left fold with a plain function; each pull is awaited in turn."""
        result = initial
        seen = 0
        async for item in self._claim("reduce"):
            result = func(result, item)
            seen += 1
        logger.debug("reduce() finished after %d items", seen)
        return result

    async def count(self) -> int:
        count = 0
        async for _ in self._claim("count"):
            count += 1
        logger.debug("count() finished: %d", count)
        return count

    async def for_each(self, func: Callable[[T], Any]) -> None:
        seen = 0
        async for item in self._claim("for_each"):
            func(item)
            seen += 1
        logger.debug("for_each() finished after %d items", seen)

    # --------- async iterator protocol ----------
    def __aiter__(self) -> "AsyncSequence[T]":
        return self

    async def __anext__(self) -> T:
        self._ensure_unclaimed()
        return await self._advance()

    async def apull(self) -> PullResult:
        """Tagged form of __anext__(): PullResult.of(item) or PullResult.done()."""
        try:
            return PullResult.of(await self.__anext__())
        except StopAsyncIteration:
            return PullResult.done()

    # --------- helpers ----------
    async def _advance(self) -> T:
        if self._exhausted:
            raise StopAsyncIteration
        try:
            return await self._inner.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            raise

    def _claim(self, operation: str) -> AsyncIterator[T]:
        self._ensure_unclaimed()
        self._claimed_by = operation
        logger.debug("%s() took ownership of sequence %#x", operation, id(self))
        return self._release()

    def _ensure_unclaimed(self):
        if self._claimed_by is not None:
            raise SequenceConsumedError(self._claimed_by)

    async def _release(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self._advance()
            except StopAsyncIteration:
                return
            yield item

    def _derive(self, operation: str, transform: Callable[[AsyncIterator[T]], AsyncIterator[U]]) -> "AsyncSequence[U]":
        return AsyncSequence(transform(self._claim(operation)))


async def _from_sync(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


def _as_async_iterable(source: AnyIterable[T]) -> AsyncIterable[T]:
    if isinstance(source, abc.AsyncIterable):
        return source
    return _from_sync(iter(source))


def _claim_argument(other: AnyIterable[T], operation: str) -> AsyncIterable[T]:
    if isinstance(other, AsyncSequence):
        return other._claim(operation)
    return _as_async_iterable(other)


def _claim_arguments(receiver: AsyncSequence, others: Iterable[AnyIterable[T]],
                     operation: str) -> List[AsyncIterable[T]]:
    """Claim wrapped arguments, but only once the receiver and all of them are known to be free."""
    others = list(others)
    receiver._ensure_unclaimed()
    for other in others:
        if isinstance(other, AsyncSequence):
            other._ensure_unclaimed()
    return [_claim_argument(other, operation) for other in others]


async def _pull_or_done(items: AsyncIterator[T]) -> Tuple[bool, Any]:
    try:
        return False, await items.__anext__()
    except StopAsyncIteration:
        return True, None
