"""Detached background work.

Side effects that must never affect the caller's response (API token
last_used_at touch-ups, ingestion audit rows) are spawned here instead of
awaited. The task set keeps a strong reference until each task finishes;
failures are only logged.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from starlette.concurrency import run_in_threadpool

from scribe.logging import get_logger

logger = get_logger(__name__)

_background_tasks: set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("background_task_failed", task=task.get_name(), error=str(exc))


def spawn_background(func: Callable[..., Any], *args: Any, name: str | None = None) -> asyncio.Task:
    """Run a sync function on the threadpool without awaiting it."""
    task = asyncio.create_task(run_in_threadpool(func, *args), name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def drain_background(timeout: float | None = None) -> None:
    """Wait for all in-flight background tasks (shutdown and tests)."""
    if _background_tasks:
        await asyncio.wait(list(_background_tasks), timeout=timeout)
