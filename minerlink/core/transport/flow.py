import asyncio
from collections import deque


class FlowControl:
    """
    Write-completion bookkeeping for an asyncio TCP transport.

    asyncio transports accept every write immediately and call
    `pause_writing()` once their buffer crosses the high-water mark. A write
    issued while the transport is below that mark counts as flushed right
    away. A write issued while it is paused is tracked here and completes when
    the transport calls `resume_writing()`, in issue order.

    If the connection is lost first, `abort()` fails every pending write.
    """

    def __init__(self) -> None:
        self.write_paused = False
        self._pending: deque[asyncio.Future[None]] = deque()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def track(self, waiter: asyncio.Future[None]) -> None:
        """Hold `waiter` until the transport buffer drains."""
        self._pending.append(waiter)

    def pause_writing(self) -> None:
        """Mark the transport as non-writable."""
        self.write_paused = True

    def resume_writing(self) -> None:
        """Mark the transport as writable and complete pending writes."""
        self.write_paused = False
        while self._pending:
            waiter = self._pending.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def abort(self, exc: BaseException) -> None:
        """Fail every pending write with `exc`."""
        self.write_paused = False
        while self._pending:
            waiter = self._pending.popleft()
            if not waiter.done():
                waiter.set_exception(exc)
