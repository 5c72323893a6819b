"""
Helpers for running blocking cloud API calls from asyncio with bounded parallelism.
"""

import asyncio
from concurrent.futures import Executor
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_blocking(
    func: Callable[..., R],
    *args: Any,
    timeout: Optional[float] = None,
    executor: Optional[Executor] = None,
) -> R:
    """
    Run a blocking function in a worker thread.

    Args:
        func: The function to call
        *args: Positional arguments for the function
        timeout: Maximum number of seconds to wait; None waits forever
        executor: Thread pool to run in; the event loop's default executor if None

    Returns:
        The function's return value

    Raises:
        asyncio.TimeoutError: If the call does not finish within the timeout. The
            thread itself cannot be interrupted and is abandoned; run calls in a
            dedicated executor to be able to shut down without waiting for it.
    """
    loop = asyncio.get_running_loop()
    return await asyncio.wait_for(loop.run_in_executor(executor, func, *args), timeout)


async def fan_out(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[Tuple[T, R]]:
    """
    Run a worker for every item with at most `concurrency` workers in flight.

    Workers are expected to handle their own errors; an exception escaping a worker
    propagates to the caller.

    Args:
        items: Items to process
        worker: Coroutine function called once per item
        concurrency: Maximum number of simultaneous workers
        cancel_event: If set, items whose worker has not started yet are skipped;
            workers already running are allowed to finish

    Returns:
        List of (item, result) pairs in the order of `items`, omitting skipped items
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)
    skipped = object()

    async def run_one(item: T) -> Any:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                return skipped
            return await worker(item)

    item_list = list(items)
    results = await asyncio.gather(*(run_one(item) for item in item_list))
    return [(item, result) for item, result in zip(item_list, results) if result is not skipped]
