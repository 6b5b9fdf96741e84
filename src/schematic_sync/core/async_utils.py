"""Async utilities: thread offloading, all-settled joins and polling."""

import asyncio
import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Coroutine,
    Sequence,
    TypeVar,
)

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread without blocking the loop.

    Used for filesystem access and ``requests`` calls.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def gather_settled(
    coros: Sequence[Coroutine[Any, Any, T]],
    max_parallel: int | None = None,
) -> list[T | BaseException]:
    """Run coroutines concurrently and wait until every one has settled.

    Unlike a plain ``asyncio.gather``, a failure in one coroutine neither
    cancels nor hides the others: exceptions are returned in place of the
    result, in input order.

    Args:
        coros: Coroutines to run.
        max_parallel: Optional bound on how many run at once.

    Returns:
        One entry per coroutine: its result or the exception it raised.
    """
    if max_parallel is None:
        return list(
            await asyncio.gather(*coros, return_exceptions=True)
        )

    semaphore = asyncio.Semaphore(max_parallel)

    async def _bounded(coro: Coroutine[Any, Any, T]) -> T:
        async with semaphore:
            return await coro

    return list(
        await asyncio.gather(
            *(_bounded(c) for c in coros), return_exceptions=True
        )
    )


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    *,
    finished: Callable[[T], bool] | None = None,
    interval: float = 1.0,
    retry_on_error: bool = True,
) -> T:
    """Call *probe* repeatedly until *finished* accepts its result.

    The first attempt is made immediately.  Each later attempt starts
    *interval* seconds after the previous one settled, so at most one probe
    is ever in flight.  There is no attempt limit and no deadline; wrap the
    call in ``asyncio.wait_for`` when one is needed.

    Args:
        probe: Zero-argument callable returning an awaitable result.
        finished: Completion predicate.  Defaults to accepting the first
            result.
        interval: Delay between attempts, in seconds.
        retry_on_error: If ``True``, exceptions raised by *probe* are
            logged and the probe is retried.  If ``False``, the first
            exception propagates to the caller.

    Returns:
        The first result for which *finished* returned ``True``.

    Example:
        progress = await poll_until(
            lambda: run_sync(client.query_progress, operation_id),
            finished=lambda p: p.status != "Processing",
        )
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            result = await probe()
        except Exception as exc:
            if not retry_on_error:
                raise
            logger.debug(
                "Poll attempt %d failed, retrying in %.1fs: %s",
                attempt,
                interval,
                exc,
            )
        else:
            if finished is None or finished(result):
                return result
            logger.debug(
                "Poll attempt %d not finished, retrying in %.1fs",
                attempt,
                interval,
            )
        await asyncio.sleep(interval)
