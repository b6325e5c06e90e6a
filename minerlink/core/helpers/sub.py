import asyncio
from typing import AsyncIterator, Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """
    Multicast, unbuffered stream of values.

    Every `async for` over the subscription starts at the next published
    value and then sees all values in publication order, independently of
    other subscribers. Values published while nobody iterates are lost.
    Closing the subscription ends every iteration.

    Internally each published value resolves the current waiter with the
    pair (value, next_waiter), forming a chain that late readers can still
    walk.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._waiter: asyncio.Future = loop.create_future()
        self.closed = False

    def publish(self, value: T) -> None:
        if self.closed:
            return

        next_waiter = self._loop.create_future()
        self._waiter.set_result((value, next_waiter))
        self._waiter = next_waiter

    def close(self) -> None:
        if self.closed:
            return

        self.closed = True
        self._waiter.set_result(_CLOSED)

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate(self._waiter)

    @staticmethod
    async def _iterate(waiter: asyncio.Future) -> AsyncIterator[T]:
        while True:
            # shield: cancelling one reader must not cancel the shared waiter
            item = await asyncio.shield(waiter)
            if item is _CLOSED:
                return

            value, waiter = item
            yield value
