"""Detached background job runner for document processing"""

from typing import Any, Awaitable, Callable, Optional, Set
import asyncio
import logging

from learning_assistant.config import settings

logger = logging.getLogger(__name__)


class BackgroundTaskRunner:
    """
    Runs coroutines detached from the request that submitted them

    Concurrency is bounded by a semaphore; failures are logged, never
    propagated to the submitter.
    """

    def __init__(self, max_concurrency: int = settings.MAX_BACKGROUND_TASKS):
        self.max_concurrency = max(1, max_concurrency)
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def semaphore(self) -> asyncio.Semaphore:
        # Created lazily so it binds to the running loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrency)
        return self._semaphore

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, func: Callable[..., Awaitable[Any]], *args: Any, name: str = None) -> asyncio.Task:
        """
        Schedule ``func(*args)`` on the running event loop

        Args:
            func: Coroutine function
            *args: Positional arguments for ``func``
            name: Task name used in logs

        Returns:
            The scheduled task
        """
        label = name or getattr(func, "__name__", "task")
        task = asyncio.get_running_loop().create_task(self._run(func, args, label), name=label)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Submitted background task {label} ({self.pending} pending)")
        return task

    async def _run(self, func: Callable[..., Awaitable[Any]], args: tuple, label: str) -> Any:
        async with self.semaphore:
            try:
                return await func(*args)
            except asyncio.CancelledError:
                logger.warning(f"Background task {label} cancelled")
                raise
            except Exception as e:
                logger.error(f"Background task {label} failed: {e}", exc_info=True)
                return None

    async def drain(self, timeout: float = None):
        """Wait for all pending tasks, cancelling what is left after ``timeout``"""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        logger.info(f"Waiting for {len(tasks)} background tasks")
        done, not_done = await asyncio.wait(tasks, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            await asyncio.gather(*not_done, return_exceptions=True)
            logger.warning(f"Cancelled {len(not_done)} background tasks on shutdown")


# Global task runner instance
task_runner = BackgroundTaskRunner()


def get_task_runner() -> BackgroundTaskRunner:
    """Task runner dependency"""
    return task_runner
