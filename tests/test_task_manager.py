"""Tests for the task tracker that backs link-click and popstate navigations."""

from __future__ import annotations

import asyncio
import unittest

from racemanager.task_manager import TaskManager


async def _sleep_forever(cancelled: list[bool]) -> None:
    try:
        await asyncio.sleep(9999)
    except asyncio.CancelledError:
        cancelled.append(True)
        raise


class TaskManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate spawning, awaiting and cancelling tracked tasks."""

    async def test_spawn_tracks_until_done(self) -> None:
        tm = TaskManager()
        gate = asyncio.Event()

        async def navigation() -> str:
            await gate.wait()
            return "done"

        task = tm.spawn(navigation(), name="nav")
        self.assertEqual(task.get_name(), "nav")
        self.assertEqual(tm.pending, 1)
        gate.set()
        self.assertEqual(await task, "done")
        self.assertEqual(tm.pending, 0)

    async def test_await_all_waits_for_tasks_spawned_while_waiting(self) -> None:
        tm = TaskManager()
        order: list[str] = []

        async def child() -> None:
            await asyncio.sleep(0)
            order.append("child")

        async def parent() -> None:
            order.append("parent")
            tm.spawn(child())

        tm.spawn(parent())
        await tm.await_all()
        self.assertEqual(order, ["parent", "child"])
        self.assertEqual(tm.pending, 0)

    async def test_await_all_with_nothing_tracked_returns(self) -> None:
        await TaskManager().await_all()

    async def test_cancel_all_cancels_running_tasks(self) -> None:
        tm = TaskManager()
        cancelled: list[bool] = []
        first = tm.spawn(_sleep_forever(cancelled))
        second = tm.spawn(_sleep_forever(cancelled))
        await asyncio.sleep(0)  # Let the tasks start.

        await tm.cancel_all()

        self.assertEqual(cancelled, [True, True])
        self.assertTrue(first.cancelled())
        self.assertTrue(second.cancelled())
        self.assertEqual(tm.pending, 0)

    async def test_failed_task_is_logged(self) -> None:
        tm = TaskManager()

        async def explode() -> None:
            raise ValueError("pipeline bug")

        with self.assertLogs("racemanager.task_manager", level="WARNING") as logs:
            tm.spawn(explode(), name="broken")
            await tm.await_all()
            await asyncio.sleep(0)
        self.assertTrue(any("task.exception" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
