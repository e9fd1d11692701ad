import asyncio
from typing import Any, Awaitable, Callable, List, Sequence


async def run_concurrently(
    factories: Sequence[Callable[[], Awaitable[Any]]], max_concurrency: int
) -> List[Any]:
    """Run the given coroutine factories with at most ``max_concurrency`` in flight.

    Factories are invoked only once a slot is free, so nothing is created
    that might never be awaited. Results keep the input order.
    """
    semaphore = asyncio.Semaphore(max(1, int(max_concurrency)))

    async def worker(factory: Callable[[], Awaitable[Any]]) -> Any:
        async with semaphore:
            return await factory()

    tasks = [asyncio.create_task(worker(factory)) for factory in factories]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for t in tasks:
            t.cancel()
        raise
