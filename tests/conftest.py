"""
Pytest configuration for the lazyseq tests.

Puts the repository root on the path so the package imports without an
install, and provides instrumented sources that record how often they were
pulled.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Add the parent directory to the Python path
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))


class CountingSource:
    """Iterator over data that counts successful pulls."""

    def __init__(self, data):
        self._it = iter(data)
        self.pulls = 0

    def __iter__(self):
        return self

    def __next__(self):
        item = next(self._it)
        self.pulls += 1
        return item


class AsyncCountingSource:
    """Async iterator over data that suspends before every pull and counts successful ones."""

    def __init__(self, data):
        self._it = iter(data)
        self.pulls = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        await asyncio.sleep(0)
        try:
            item = next(self._it)
        except StopIteration:
            raise StopAsyncIteration
        self.pulls += 1
        return item


class FlakySource:
    """Reports exhaustion once, then starts producing again."""

    def __init__(self):
        self.calls = 0

    def __iter__(self):
        return self

    def __next__(self):
        self.calls += 1
        if self.calls == 2:
            raise StopIteration
        return self.calls


class AsyncFlakySource:
    def __init__(self):
        self.calls = 0

    def __aiter__(self):
        return self

    async def __anext__(self):
        await asyncio.sleep(0)
        self.calls += 1
        if self.calls == 2:
            raise StopAsyncIteration
        return self.calls


@pytest.fixture
def counting_source():
    """Factory for CountingSource instances"""
    return CountingSource


@pytest.fixture
def async_counting_source():
    """Factory for AsyncCountingSource instances"""
    return AsyncCountingSource


@pytest.fixture
def flaky_source():
    return FlakySource()


@pytest.fixture
def async_flaky_source():
    return AsyncFlakySource()


@pytest.fixture
def async_range():
    """Factory for async generators over range(*args) that suspend before every item"""
    async def _async_range(*args):
        for i in range(*args):
            await asyncio.sleep(0)
            yield i
    return _async_range
