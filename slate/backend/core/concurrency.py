"""
Concurrency Infrastructure.

Named semaphores and tracked background tasks. Everything is created
lazily on first access and cleaned up during shutdown.

Semaphores:
    Created per-dependency to limit concurrent access to external services.
    Sizing is configured in config/settings/concurrency.yaml.

Background tasks:
    Fire-and-forget work (embedding posts) that the request never awaits.
    Tasks are held in a registry so they are not garbage collected while
    pending, and are drained on shutdown.

Usage:
    from slate.backend.core.concurrency import get_semaphore, spawn_background

    async with get_semaphore("llm"):
        result = await agent.run(prompt)

    spawn_background(sink.post(note_id, content), name="embed_note")
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from slate.backend.core.logging import get_logger

logger = get_logger(__name__)

_semaphores: dict[str, asyncio.Semaphore] = {}
_background_tasks: set[asyncio.Task] = set()


def get_semaphore(name: str) -> asyncio.Semaphore:
    """Get a named semaphore for concurrency-limiting external calls.

    The capacity is read from concurrency.yaml under `semaphores.<name>`.
    If the name is not configured, defaults to 20.
    """
    if name not in _semaphores:
        from slate.backend.core.config import get_app_config
        semaphore_config = get_app_config().concurrency.semaphores
        capacity = getattr(semaphore_config, name, 20)
        _semaphores[name] = asyncio.Semaphore(capacity)
        logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return _semaphores[name]


def _on_task_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Background task failed",
            extra={"task": task.get_name(), "error": str(exc)},
        )


def spawn_background(coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
    """Schedule a coroutine that the caller never awaits."""
    task = asyncio.get_running_loop().create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task


def pending_background_tasks() -> int:
    """Number of background tasks that have not finished."""
    return len(_background_tasks)


async def drain_background_tasks(timeout: float | None = None) -> None:
    """Wait for pending background tasks, cancelling the ones still running at timeout."""
    if not _background_tasks:
        return
    tasks = list(_background_tasks)
    done, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    logger.info(
        "Background tasks drained",
        extra={"completed": len(done), "cancelled": len(pending)},
    )


async def shutdown_pools() -> None:
    """Drain background work and drop semaphores. Called during application shutdown."""
    from slate.backend.core.config import get_app_config

    drain_seconds = get_app_config().concurrency.shutdown.drain_seconds
    await drain_background_tasks(timeout=drain_seconds)

    _semaphores.clear()
    logger.debug("Semaphores cleared")
