from typing import Any, Awaitable, Protocol, TYPE_CHECKING

from minerlink.core.models.command import StratumCommand

if TYPE_CHECKING:
    from minerlink.core.connections.connection import Connection


class CommandDispatcher(Protocol):
    """
    Routes parsed commands to their handlers with a Connection as context.

    The dispatcher is shared by many connections. Every call receives the
    Connection the commands came from, so handlers can read its state and
    send on it.
    """

    def process(
        self,
        connection: "Connection",
        commands: list[StratumCommand],
    ) -> Awaitable[None] | None:
        """
        Invoke the matching handler for each command, in sequence order.

        May return an awaitable when handlers have asynchronous work left;
        the Connection schedules it.
        """

    def set_difficulty(self, connection: "Connection", *args: Any) -> Any:
        """Handle a `mining.set_difficulty` notification."""

    def notify(self, connection: "Connection", *args: Any) -> Any:
        """Handle a `mining.notify` notification."""
