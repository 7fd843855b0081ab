"""Bounded-concurrency map primitives over asyncio.

- ``map_ordered``: results come out in input order. Out-of-order
  completions wait in a buffer until everything before them is yielded.
- ``map_unordered``: results come out in completion order.

Both pull their input lazily, one item per free slot, so an expensive or
infinite input is never read ahead of the concurrency bound. On the first
error, outstanding tasks are cancelled, the input is closed and the error
propagates.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import (
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    TypeVar,
    Union,
)

T = TypeVar("T")
R = TypeVar("R")


async def _from_sync(items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


def _as_async_iterator(items: Union[Iterable[T], AsyncIterable[T]]) -> AsyncIterator[T]:
    if hasattr(items, "__aiter__"):
        return items.__aiter__()  # type: ignore[union-attr]
    return _from_sync(items)  # type: ignore[arg-type]


async def _shutdown(tasks: Iterable[asyncio.Future], iterator: AsyncIterator) -> None:
    pending = []
    for task in tasks:
        if not task.done():
            task.cancel()
            pending.append(task)
        elif not task.cancelled():
            # Mark the error as retrieved; the first one already propagated.
            task.exception()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError(f"concurrency limit must be at least 1, got {limit}")


async def map_ordered(
    func: Callable[[T], Awaitable[R]],
    items: Union[Iterable[T], AsyncIterable[T]],
    limit: int,
) -> AsyncIterator[R]:
    """Apply ``func`` with at most ``limit`` calls in flight, in input order.

    Args:
        func: Coroutine function applied to each item.
        items: Input, sync or async, possibly infinite.
        limit: Maximum number of concurrent calls.

    Yields:
        ``func(item)`` results in the order of ``items``.
    """
    _check_limit(limit)
    iterator = _as_async_iterator(items)
    in_flight: deque[asyncio.Future[R]] = deque()
    exhausted = False

    try:
        while True:
            while not exhausted and len(in_flight) < limit:
                try:
                    item = await iterator.__anext__()
                except StopAsyncIteration:
                    exhausted = True
                    break
                in_flight.append(asyncio.ensure_future(func(item)))

            if not in_flight:
                return

            yield await in_flight.popleft()
    finally:
        await _shutdown(in_flight, iterator)


async def map_unordered(
    func: Callable[[T], Awaitable[R]],
    items: Union[Iterable[T], AsyncIterable[T]],
    limit: int,
) -> AsyncIterator[R]:
    """Apply ``func`` with at most ``limit`` calls in flight.

    Args:
        func: Coroutine function applied to each item.
        items: Input, sync or async.
        limit: Maximum number of concurrent calls.

    Yields:
        ``func(item)`` results as they complete.
    """
    _check_limit(limit)
    iterator = _as_async_iterator(items)
    in_flight: set[asyncio.Future[R]] = set()
    exhausted = False

    try:
        while True:
            while not exhausted and len(in_flight) < limit:
                try:
                    item = await iterator.__anext__()
                except StopAsyncIteration:
                    exhausted = True
                    break
                in_flight.add(asyncio.ensure_future(func(item)))

            if not in_flight:
                return

            done, in_flight = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)

            # Retrieve every exception so none is reported as unhandled.
            errors = [t.exception() for t in done if t.exception() is not None]
            if errors:
                raise errors[0]

            for task in done:
                yield task.result()
    finally:
        await _shutdown(in_flight, iterator)
