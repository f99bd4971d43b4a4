"""
Fire-and-forget task queue.

Callers spawn a coroutine and move on. The queue keeps a reference to every
running task, logs failures instead of raising them, and notifies completion
hooks so tests and shutdown code can observe what happened.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskOutcome:
    name: str
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


CompletionHook = Callable[[TaskOutcome], None]


class BackgroundTasks:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._hooks: list[CompletionHook] = []
        self.outcomes: list[TaskOutcome] = []

    def add_hook(self, hook: CompletionHook) -> None:
        self._hooks.append(hook)

    def spawn(self, coro: Awaitable, name: str) -> asyncio.Task:
        """Schedule ``coro`` on the running loop without waiting for it."""
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        name = task.get_name()
        if task.cancelled():
            outcome = TaskOutcome(name=name, cancelled=True)
            logger.warning(f"Background task {name} was cancelled")
        else:
            error = task.exception()
            outcome = TaskOutcome(name=name, error=error)
            if error is not None:
                logger.error(f"Background task {name} failed: {error}", exc_info=error)

        self.outcomes.append(outcome)
        for hook in self._hooks:
            try:
                hook(outcome)
            except Exception as hook_err:
                logger.error(f"Completion hook failed for {name}: {hook_err}", exc_info=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> list[TaskOutcome]:
        """Wait for every task spawned so far (and any they spawn). Never raises."""
        seen = len(self.outcomes)
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # Let done-callbacks run before checking again
            await asyncio.sleep(0)
        return self.outcomes[seen:]
