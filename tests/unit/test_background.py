"""Unit tests for src/services/background.py."""

import asyncio

from src.services.background import BackgroundTasks


class TestBackgroundTasks:
    async def test_spawn_does_not_wait(self):
        tasks = BackgroundTasks()
        gate = asyncio.Event()

        async def _job():
            await gate.wait()

        tasks.spawn(_job(), name="wait")
        assert tasks.pending == 1

        gate.set()
        outcomes = await tasks.drain()
        assert tasks.pending == 0
        assert [o.name for o in outcomes] == ["wait"]
        assert outcomes[0].ok

    async def test_failures_are_recorded_not_raised(self):
        tasks = BackgroundTasks()

        async def _boom():
            raise RuntimeError("nope")

        tasks.spawn(_boom(), name="boom")
        outcomes = await tasks.drain()

        assert len(outcomes) == 1
        assert outcomes[0].ok is False
        assert isinstance(outcomes[0].error, RuntimeError)

    async def test_hooks_see_every_outcome(self):
        tasks = BackgroundTasks()
        seen = []
        tasks.add_hook(lambda outcome: seen.append(outcome.name))

        async def _ok():
            return 1

        tasks.spawn(_ok(), name="a")
        tasks.spawn(_ok(), name="b")
        await tasks.drain()

        assert sorted(seen) == ["a", "b"]

    async def test_broken_hook_does_not_break_queue(self):
        tasks = BackgroundTasks()

        def _bad_hook(outcome):
            raise ValueError("hook bug")

        tasks.add_hook(_bad_hook)

        async def _ok():
            return None

        tasks.spawn(_ok(), name="a")
        outcomes = await tasks.drain()
        assert outcomes[0].ok

    async def test_cancelled_task(self):
        tasks = BackgroundTasks()
        task = tasks.spawn(asyncio.sleep(10), name="slow")
        task.cancel()

        outcomes = await tasks.drain()

        assert outcomes[0].cancelled is True
        assert outcomes[0].ok is False

    async def test_drain_picks_up_tasks_spawned_by_tasks(self):
        tasks = BackgroundTasks()

        async def _child():
            return None

        async def _parent():
            tasks.spawn(_child(), name="child")

        tasks.spawn(_parent(), name="parent")
        outcomes = await tasks.drain()

        assert {o.name for o in outcomes} == {"parent", "child"}

    async def test_drain_with_nothing_pending(self):
        assert await BackgroundTasks().drain() == []
