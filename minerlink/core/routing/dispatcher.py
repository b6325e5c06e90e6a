import inspect
import logging
from typing import Any, Awaitable, Callable

from minerlink.core.connections.connection import Connection
from minerlink.core.models.command import StratumCommand
from minerlink.core.models.errors import ErrorDescriptor, StratumErrorCode
from minerlink.core.models.state import ConnectionEvent
from minerlink.core.routing.router import CommandHandler, Router

# Notifications the connection answers through its own forwarders
FORWARDED = {
    "mining.set_difficulty": "set_difficulty",
    "mining.notify": "notify",
}


class RoutedDispatcher:
    """
    Default CommandDispatcher for the client side of Stratum.

    For each parsed command, in order, the dispatcher records it as the
    connection's last command and then:

    - `mining.set_difficulty` / `mining.notify` go through the connection's
      forwarders, which call back into `set_difficulty()` / `notify()` here
      and from there into the registered handlers;
    - other notifications go to the handler registered for their method,
      called as `handler(connection, *params)`;
    - responses update the session: an error becomes a "mining.error" event,
      a subscribe result sets the subscription and extranonce values, and a
      `true` reply to `mining.authorize` authorizes the connection. Replies
      are matched to requests in send order.

    Handlers may be plain functions or coroutines. Awaitables they return are
    awaited in order by the coroutine `process()` hands back to the
    connection.
    """

    def __init__(self) -> None:
        self.router = Router()
        self._logger = logging.getLogger("core.routing.dispatcher")

    def command(self, method: str) -> Callable[[CommandHandler], CommandHandler]:
        return self.router.command(method)

    def process(self, connection: Connection, commands: list[StratumCommand]) -> Awaitable[None] | None:
        pending: list[Awaitable[Any]] = []

        for command in commands:
            connection.set_last_command(command)

            if command.is_response:
                self._handle_response(connection, command)
                continue

            try:
                result = self._dispatch(connection, command)
            except Exception as exc:
                self._logger.error(
                    f"({connection.id}) Handler for {command.method} failed: {exc}",
                    exc_info=exc
                )
                connection.emit(
                    ConnectionEvent.PROTOCOL_ERROR,
                    ErrorDescriptor(code=int(StratumErrorCode.OTHER), message=str(exc))
                )
                continue

            if inspect.isawaitable(result):
                pending.append(result)

        if pending:
            return self._complete(pending)
        return None

    def _dispatch(self, connection: Connection, command: StratumCommand) -> Any:
        forwarder = FORWARDED.get(command.method)
        if forwarder is not None and hasattr(connection, forwarder):
            return getattr(connection, forwarder)(command.params)
        return self._call(command.method, connection, *command.params)

    def set_difficulty(self, connection: Connection, *args: Any) -> Any:
        return self._call("mining.set_difficulty", connection, *args)

    def notify(self, connection: Connection, *args: Any) -> Any:
        return self._call("mining.notify", connection, *args)

    def _call(self, method: str, connection: Connection, *args: Any) -> Any:
        handler = self.router.resolve(method)
        if handler is None:
            self._logger.warning(f"({connection.id}) No handler registered for {method}")
            return None

        return handler(connection, *args)

    def _handle_response(self, connection: Connection, command: StratumCommand) -> None:
        answered = self._answered_method(connection)

        if command.error is not None:
            error = ErrorDescriptor.from_wire(command.error)
            self._logger.warning(
                f"({connection.id}) Pool error {error.code} for {answered or 'unknown request'}: {error.message}"
            )
            if answered == "mining.authorize":
                connection.awaiting_authorization = False  # type: ignore[attr-defined]
            connection.emit(ConnectionEvent.PROTOCOL_ERROR, error)
            return

        result = command.result
        if self._is_subscribe_result(result):
            self._apply_subscription(connection, result)
        elif (
            isinstance(result, bool)
            and answered in (None, "mining.authorize")
            and getattr(connection, "awaiting_authorization", False)
        ):
            connection.awaiting_authorization = False  # type: ignore[attr-defined]
            if result:
                connection.authorized = True
                self._logger.info(f"({connection.id}) Worker authorized")
            else:
                self._logger.warning(f"({connection.id}) Worker authorization refused")
                connection.emit(
                    ConnectionEvent.PROTOCOL_ERROR,
                    ErrorDescriptor.of(StratumErrorCode.UNAUTHORIZED_WORKER)
                )

    @staticmethod
    def _answered_method(connection: Connection) -> str | None:
        """
        Method of the oldest request still waiting for its reply.

        Every request carries the same id, so replies are matched to
        requests by arrival order. None when the connection does not keep
        track of its requests.
        """
        outstanding = getattr(connection, "outstanding", None)
        if outstanding:
            return outstanding.popleft()
        return None

    @staticmethod
    def _is_subscribe_result(result: Any) -> bool:
        return (
            isinstance(result, list)
            and len(result) >= 3
            and isinstance(result[0], list)
            and isinstance(result[1], str)
            and isinstance(result[2], int)
        )

    def _apply_subscription(self, connection: Connection, result: list[Any]) -> None:
        subscriptions = result[0]
        # Some pools send a single [method, id] pair instead of a list of pairs
        if subscriptions and isinstance(subscriptions[0], str):
            subscriptions = [subscriptions]

        token = ""
        for item in subscriptions:
            if isinstance(item, list) and len(item) >= 2:
                if not token or item[0] == "mining.notify":
                    token = str(item[1])

        connection.subscription = token
        connection.extranonce1 = result[1]
        connection.extranonce2_size = result[2]
        self._logger.info(
            f"({connection.id}) Subscribed: extranonce1={connection.extranonce1} "
            f"extranonce2_size={connection.extranonce2_size}"
        )

    async def _complete(self, pending: list[Awaitable[Any]]) -> None:
        for awaitable in pending:
            try:
                await awaitable
            except Exception as exc:
                self._logger.error(f"Error in command handler: {exc}", exc_info=exc)
