"""
Fire-and-forget background tasks.
"""

import asyncio
import logging
from typing import Any, Coroutine, Set

logger = logging.getLogger(__name__)

# The event loop only keeps weak references to tasks.
_background_tasks: Set["asyncio.Task[Any]"] = set()


def fire_and_forget(coro: Coroutine[Any, Any, Any], description: str) -> "asyncio.Task[Any]":
    """Schedule ``coro`` on the running loop; failures are logged and dropped."""
    task = asyncio.create_task(coro, name=description)
    _background_tasks.add(task)

    def _done(t: "asyncio.Task[Any]") -> None:
        _background_tasks.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.debug("Background task %r failed: %s", description, exc)

    task.add_done_callback(_done)
    return task
