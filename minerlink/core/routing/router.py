import logging
from typing import Any, Callable

CommandHandler = Callable[..., Any]


class Router:
    """
    Maps Stratum method names to handler callables.

    Handlers are registered exactly once per method. Attempting to register a
    second handler for the same method raises a RuntimeError. The Router only
    stores and resolves; calling handlers is the dispatcher's job.
    """

    def __init__(self) -> None:
        self._routes: dict[str, CommandHandler] = {}
        self._logger = logging.getLogger("core.routing.router")

    def command(self, method: str) -> Callable[[CommandHandler], CommandHandler]:
        def decorator(func: CommandHandler) -> CommandHandler:
            if method in self._routes:
                raise RuntimeError(f"Handler already registered for '{method}'")

            self._routes[method] = func
            self._logger.debug(f"Registered handler for '{method}'")
            return func

        return decorator

    def resolve(self, method: str) -> CommandHandler | None:
        return self._routes.get(method)

    def routes(self) -> dict[str, CommandHandler]:
        return dict(self._routes)
