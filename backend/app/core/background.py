"""Side-effect tasks spawned by write operations.

Tasks are kept in a module-level registry until they finish so the event
loop never garbage-collects them mid-flight. Failures are logged and
swallowed: a side effect must never fail the write that spawned it.
"""

import asyncio
from typing import Awaitable, Set

import structlog

logger = structlog.get_logger(__name__)

_tasks: Set[asyncio.Task] = set()


async def _guarded(coro: Awaitable, name: str) -> None:
    try:
        await coro
    except asyncio.CancelledError:
        logger.warning("side_effect_cancelled", task=name)
        raise
    except Exception as e:
        logger.error("side_effect_failed", task=name, error=str(e), exc_info=True)


def spawn(coro: Awaitable, name: str) -> asyncio.Task:
    """Schedule ``coro`` as an independent task.

    Args:
        coro: Coroutine to run
        name: Task name used in logs

    Returns:
        The scheduled task (callers may :func:`join` it or leave it detached)
    """
    task = asyncio.create_task(_guarded(coro, name), name=name)
    _tasks.add(task)
    task.add_done_callback(_tasks.discard)
    return task


async def join(*tasks: asyncio.Task) -> None:
    """Wait for ``tasks`` without letting a cancelled caller cancel them.

    If the awaiting request is cancelled, the CancelledError propagates to
    the caller while the tasks keep running to completion.
    """
    if not tasks:
        return
    await asyncio.shield(asyncio.gather(*tasks))


async def drain() -> int:
    """Wait for every outstanding task, including ones spawned meanwhile.

    Returns:
        Number of tasks waited on
    """
    count = 0
    while _tasks:
        pending = list(_tasks)
        count += len(pending)
        await asyncio.gather(*pending, return_exceptions=True)
    return count


def pending_count() -> int:
    """Number of side-effect tasks still running."""
    return len(_tasks)
