import asyncio
import logging
from typing import Any, Awaitable


class TaskSpawner:
    """
    Schedules and tracks the background work triggered by inbound commands.

    Dispatch happens inside synchronous transport callbacks, so any awaitable
    a handler returns is handed to the spawner instead of being awaited. The
    spawner keeps a strong reference until completion and logs failures,
    which would otherwise only surface when the task is garbage collected.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._tasks: set[asyncio.Future[Any]] = set()
        self._logger = logging.getLogger("core.helpers.spawn")

    @property
    def remaining_tasks(self) -> int:
        """Number of spawned awaitables that have not completed yet."""
        return len(self._tasks)

    def on_done(self, task: asyncio.Future[Any]) -> None:
        if not task.cancelled() and (ex := task.exception()):
            self._logger.error(
                f"Error occurred in task {task!r}: {str(ex)}",
                exc_info=ex
            )

        self._tasks.discard(task)

    def spawn(self, awaitable: Awaitable[Any]) -> asyncio.Future[Any]:
        task = asyncio.ensure_future(awaitable, loop=self._loop)
        task.add_done_callback(self.on_done)
        self._tasks.add(task)
        return task

    async def join(self) -> None:
        """Wait for every task spawned so far."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
