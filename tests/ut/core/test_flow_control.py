import asyncio
import pytest

from minerlink.core.transport.flow import FlowControl


@pytest.mark.ut
@pytest.mark.asyncio
async def test_initial_state():
    fc = FlowControl()
    assert fc.write_paused is False
    assert fc.pending == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_pause_writing():
    fc = FlowControl()

    fc.pause_writing()
    assert fc.write_paused is True


@pytest.mark.ut
@pytest.mark.asyncio
async def test_resume_completes_tracked_writes_in_order():
    fc = FlowControl()
    fc.pause_writing()
    loop = asyncio.get_running_loop()

    done = []
    waiters = [loop.create_future() for _ in range(3)]
    for i, waiter in enumerate(waiters):
        waiter.add_done_callback(lambda _, i=i: done.append(i))
        fc.track(waiter)

    await asyncio.sleep(0)
    assert done == []

    fc.resume_writing()
    await asyncio.gather(*waiters)

    assert fc.write_paused is False
    assert fc.pending == 0
    assert done == [0, 1, 2]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_abort_fails_tracked_writes():
    fc = FlowControl()
    fc.pause_writing()
    waiter = asyncio.get_running_loop().create_future()
    fc.track(waiter)

    fc.abort(ConnectionResetError("gone"))

    with pytest.raises(ConnectionResetError):
        await waiter
    assert fc.pending == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_resume_skips_cancelled_writes():
    fc = FlowControl()
    fc.pause_writing()
    waiter = asyncio.get_running_loop().create_future()
    fc.track(waiter)
    waiter.cancel()

    fc.resume_writing()

    assert waiter.cancelled()
