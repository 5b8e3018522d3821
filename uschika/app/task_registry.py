"""
Task registry for USChika background tasks.

Tracks every asyncio.Task the server starts (per-connection writers, the
persistence worker, the retention purge) so shutdown can cancel them within
a bounded time.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class TaskMetadata:
    """Metadata for tracked asyncio.Tasks."""

    def __init__(self, task: asyncio.Task[Any], task_name: str, task_type: str = "unknown"):
        """
        Initialize task metadata.

        Args:
            task: The asyncio.Task instance to track
            task_name: Human-readable name for this task
            task_type: Categorization of task (e.g., 'websocket', 'persistence', 'lifecycle')
        """
        self.task = task
        self.task_name = task_name
        self.task_type = task_type
        self.created_at = asyncio.get_running_loop().time()
        self.is_lifecycle = task_type in ("lifecycle", "persistence")

    def __repr__(self):
        status = "done" if self.task.done() else "pending"
        return f"TaskMetadata({self.task_name}, {self.task_type}, {status})"


class TaskRegistry:
    """
    Registry of tracked asyncio tasks with ordered, time-bounded shutdown.

    Lifecycle tasks are cancelled first, then everything else.
    """

    def __init__(self):
        self._active_tasks: dict[asyncio.Task[Any], TaskMetadata] = {}
        self._task_names: dict[str, asyncio.Task[Any]] = {}
        self._shutdown_in_progress = False

    def register_task(
        self, coro: Coroutine[Any, Any, Any], task_name: str, task_type: str = "unknown"
    ) -> asyncio.Task[Any]:
        """
        Create and track an asyncio.Task.

        Args:
            coro: The coroutine to wrap as a task
            task_name: Human-readable identifier for this task
            task_type: Category for shutdown ordering

        Returns:
            The created asyncio.Task

        Raises:
            RuntimeError: If called while shutdown is in progress
        """
        if self._shutdown_in_progress:
            coro.close()
            logger.warning("Attempting to register task during shutdown - denied", task_name=task_name)
            raise RuntimeError("Task registration denied during shutdown")

        if task_name in self._task_names:
            task_name = f"{task_name}_{asyncio.get_running_loop().time()}"

        task: asyncio.Task[Any] = asyncio.create_task(coro, name=task_name)
        self._active_tasks[task] = TaskMetadata(task, task_name, task_type)
        self._task_names[task_name] = task

        def task_completion_callback(completed_task: asyncio.Task[Any]):
            """Drop the task from tracking and surface unexpected failures."""
            self._active_tasks.pop(completed_task, None)
            if self._task_names.get(task_name) is completed_task:
                del self._task_names[task_name]
            if not completed_task.cancelled() and completed_task.exception() is not None:
                logger.error(
                    "Tracked task failed",
                    task_name=task_name,
                    error=str(completed_task.exception()),
                    error_type=type(completed_task.exception()).__name__,
                )

        task.add_done_callback(task_completion_callback)
        logger.debug("Registered task", task_name=task_name, task_type=task_type)
        return task

    async def cancel_task(self, task_name: str, wait_timeout: float = 2.0) -> bool:
        """
        Cancel one task by name and wait for it to finish.

        Returns:
            True if the task is gone, False if it was unknown or did not stop in time
        """
        target_task = self._task_names.get(task_name)
        if target_task is None:
            return False
        if not target_task.done():
            target_task.cancel()
            try:
                await asyncio.wait_for(target_task, timeout=wait_timeout)
            except asyncio.CancelledError:
                return True
            except TimeoutError:
                logger.warning("Cancellation timeout reached", task_name=task_name)
                return False
        return True

    async def shutdown_all(self, timeout: float = 5.0) -> bool:
        """
        Cancel all tracked tasks, lifecycle tasks first.

        Args:
            timeout: Time allowed for tasks to finish after cancellation

        Returns:
            True if every task terminated
        """
        if self._shutdown_in_progress:
            logger.warning("Shutdown already in progress")
            return False
        self._shutdown_in_progress = True

        lifecycle = [t for t, m in self._active_tasks.items() if m.is_lifecycle]
        others = [t for t, m in self._active_tasks.items() if not m.is_lifecycle]
        for task in lifecycle + others:
            if not task.done():
                task.cancel()

        pending = list(self._active_tasks.keys())
        logger.info("Cancelled active tasks - awaiting completion", cancelled_count=len(pending))
        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout)
        except TimeoutError:
            logger.error("TaskRegistry shutdown timeout", timeout=timeout)
        finally:
            self._shutdown_in_progress = False

        remaining = [m.task_name for m in self.list_active_tasks()]
        if remaining:
            logger.warning("Tasks still active after shutdown", active_tasks=remaining)
        return not remaining

    def list_active_tasks(self) -> list[TaskMetadata]:
        return [m for m in self._active_tasks.values() if not m.task.done()]

    def get_registry_info(self) -> dict[str, Any]:
        active = self.list_active_tasks()
        return {
            "active_tasks": len(active),
            "lifecycle_tasks": len([m for m in active if m.is_lifecycle]),
            "registry_shutdown_in_progress": self._shutdown_in_progress,
        }
