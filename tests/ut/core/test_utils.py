import asyncio
import signal
import sys

import pytest

from minerlink.core.helpers.utils import shutdown_event


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
async def test_shutdown_event_is_set_on_sigterm():
    loop = asyncio.get_running_loop()

    with shutdown_event(loop) as stop_event:
        signal.raise_signal(signal.SIGTERM)
        await asyncio.wait_for(stop_event.wait(), 1)

    assert stop_event.is_set()


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
async def test_shutdown_event_restores_handlers():
    before = signal.getsignal(signal.SIGTERM)

    with shutdown_event(asyncio.get_running_loop()):
        pass

    assert signal.getsignal(signal.SIGTERM) == before
