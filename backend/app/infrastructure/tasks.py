"""Shielded execution for work that must outlive its caller."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger("app")

T = TypeVar("T")


def _log_detached_outcome(operation: str, task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is None:
        logger.info(
            "Detached operation completed",
            extra={"service": "app", "stage": operation},
        )
        return
    logger.warning(
        "Detached operation failed",
        extra={
            "service": "app",
            "stage": operation,
            "error": str(error),
            "error_code": type(error).__name__,
        },
    )


async def run_shielded(coro: Awaitable[T], operation: str) -> T:
    """Await ``coro`` so that cancelling the caller does not cancel it.

    When the caller is cancelled first, the task keeps running and its
    outcome is logged once it settles, so a late failure is never left
    unretrieved.
    """
    task = asyncio.ensure_future(coro)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        task.add_done_callback(lambda t: _log_detached_outcome(operation, t))
        raise
