"""
Tests for the task registry.
"""

import asyncio

import pytest

from uschika.app.task_registry import TaskRegistry


async def _forever():
    await asyncio.sleep(3600)


async def _quick():
    return "done"


class TestTaskRegistry:
    @pytest.mark.asyncio
    async def test_completed_tasks_are_forgotten(self):
        registry = TaskRegistry()
        task = registry.register_task(_quick(), "quick", "websocket")

        assert await task == "done"
        await asyncio.sleep(0)

        assert registry.list_active_tasks() == []

    @pytest.mark.asyncio
    async def test_duplicate_names_are_kept_apart(self):
        registry = TaskRegistry()
        first = registry.register_task(_forever(), "writer", "websocket")
        second = registry.register_task(_forever(), "writer", "websocket")

        assert first.get_name() != second.get_name()
        assert len(registry.list_active_tasks()) == 2
        await registry.shutdown_all(timeout=1.0)

    @pytest.mark.asyncio
    async def test_cancel_task(self):
        registry = TaskRegistry()
        task = registry.register_task(_forever(), "writer", "websocket")

        assert await registry.cancel_task("writer") is True
        assert task.cancelled()
        assert await registry.cancel_task("writer") is False

    @pytest.mark.asyncio
    async def test_shutdown_all_cancels_everything(self):
        registry = TaskRegistry()
        registry.register_task(_forever(), "persistence_worker", "persistence")
        registry.register_task(_forever(), "websocket_writer_c1", "websocket")

        info = registry.get_registry_info()
        assert info["active_tasks"] == 2
        assert info["lifecycle_tasks"] == 1

        assert await registry.shutdown_all(timeout=1.0) is True
        assert registry.list_active_tasks() == []

    @pytest.mark.asyncio
    async def test_registration_denied_during_shutdown(self):
        registry = TaskRegistry()
        registry._shutdown_in_progress = True

        with pytest.raises(RuntimeError):
            registry.register_task(_quick(), "late", "websocket")
