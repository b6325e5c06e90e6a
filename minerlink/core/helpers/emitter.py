import logging
from collections import defaultdict
from typing import Any, Callable

Listener = Callable[..., Any]


class EventEmitter:
    """
    Synchronous fan-out of named events to registered listeners.

    Listeners run in registration order, on the caller's stack. A listener
    that raises is logged with its traceback and does not prevent the
    remaining listeners from running.
    """

    def __init__(self, name: str = "core.helpers.emitter") -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._logger = logging.getLogger(name)

    def on(self, event: str, listener: Listener) -> Listener:
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener of `event` with `args`.

        Returns True if at least one listener was registered.
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as exc:
                self._logger.error(
                    f"Listener {listener!r} failed on '{event}': {exc}",
                    exc_info=exc
                )

        return bool(listeners)
