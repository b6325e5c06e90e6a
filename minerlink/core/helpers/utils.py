import asyncio
import contextlib
import functools
import importlib
import logging
import pkgutil
import signal
import sys
import time
from collections.abc import Callable
from typing import Iterator

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)

logger = logging.getLogger("core.helpers.utils")


def now_millis() -> int:
    """Return current system time in milliseconds."""
    return int(time.time() * 1000)


@contextlib.contextmanager
def shutdown_event(loop: asyncio.AbstractEventLoop) -> Iterator[asyncio.Event]:
    """
    Yield an event that is set when the process receives a shutdown signal.

    Handlers are installed on `loop` for the duration of the block and
    removed on exit. On platforms where the loop does
    not support signal handlers, plain `signal.signal` handlers hop back
    onto the loop thread.
    """
    stop_event = asyncio.Event()

    def on_signal(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down")
        stop_event.set()

    installed: list[signal.Signals] = []
    previous: dict[signal.Signals, object] = {}

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, on_signal, sig)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            previous[sig] = signal.signal(
                sig, lambda s, _: loop.call_soon_threadsafe(on_signal, signal.Signals(s))
            )

    try:
        yield stop_event
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        for sig, handler in previous.items():
            signal.signal(sig, handler)  # type: ignore[arg-type]


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )

    # asyncio logs every slow callback at DEBUG
    if level != "DEBUG":
        logging.getLogger("asyncio").setLevel(logging.WARNING)


def scan(package: str):
    """
    Decorator that imports every module of `package` before the decorated
    function runs, so that handler modules get to register themselves.
    """
    def decorator(func: Callable):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            py_package = importlib.import_module(package)

            for module_info in pkgutil.iter_modules(py_package.__path__):
                importlib.import_module(f"{package}.{module_info.name}")

            return func(*args, **kwargs)

        return wrapper

    return decorator
