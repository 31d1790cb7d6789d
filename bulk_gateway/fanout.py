import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

from .config import DEFAULT_CONCURRENCY
from .exceptions import InputValidationError

T = TypeVar("T")
R = TypeVar("R")


async def bounded_map(
    items: Iterable[T],
    func: Callable[[T], Awaitable[R]],
    concurrency: int = DEFAULT_CONCURRENCY,
) -> List[R]:
    """
    Runs func over items with at most `concurrency` calls in flight.

    Parameters:
    - items: The inputs, consumed once.
    - func: Async callable applied to each item. Per-item failures should be
      returned as values; the first exception it raises cancels every call
      still running or queued and then propagates out of bounded_map.
    - concurrency: Ceiling on simultaneous calls (must be >= 1).

    Returns:
    - A list with one result per item, in input order regardless of
      completion order.
    """
    if concurrency < 1:
        raise InputValidationError(f"concurrency must be >= 1, got {concurrency}")

    items = list(items)
    if not items:
        return []

    sem = asyncio.Semaphore(concurrency)

    async def run(item: T) -> R:
        async with sem:
            return await func(item)

    tasks = [asyncio.ensure_future(run(item)) for item in items]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    if pending:
        for task in pending:
            task.cancel()
        # wait for the cancellations so nothing keeps talking to the engine
        await asyncio.gather(*pending, return_exceptions=True)

    failed = [task for task in tasks if task in done and task.exception() is not None]
    if failed:
        raise failed[0].exception()
    return [task.result() for task in tasks]
