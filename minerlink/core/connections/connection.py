import asyncio
import functools
import inspect
import logging
import socket
import ssl
import uuid
from typing import Any

from minerlink.core.helpers.emitter import EventEmitter, Listener
from minerlink.core.helpers.spawn import TaskSpawner
from minerlink.core.helpers.sub import Subscription
from minerlink.core.helpers.utils import now_millis
from minerlink.core.models.command import StratumCommand
from minerlink.core.models.config import ConnectionConfig
from minerlink.core.models.errors import (
    ErrorDescriptor,
    FrameTooLarge,
    StratumErrorCode,
    TransportWriteFailure,
)
from minerlink.core.models.state import AuthState, ConnectionEvent, SocketAddress
from minerlink.core.ports.dispatcher import CommandDispatcher
from minerlink.core.ports.parser import CommandParser
from minerlink.core.transport.stream import StreamSocket


class Connection:
    """
    One session with a Stratum peer over a single TCP stream.

    The Connection owns its StreamSocket for its whole lifetime and keeps the
    per-session state the protocol needs: a random identity that stays unique
    across processes, the authorization flag, the subscription token, the
    last activity timestamp used by idle reapers, the outgoing request id and
    the last command received.

    Socket lifecycle events ("end", "error", "drain") are re-emitted with the
    Connection as payload, so one listener can watch many connections. All
    events go through a single emission point which feeds both callback
    listeners (`on`) and the `events` subscription.

    Inbound bytes are handed to the injected CommandParser, and the commands
    it yields are handed to the injected CommandDispatcher with this
    Connection as context. In server role the Connection does not listen to
    inbound data itself; the owner feeds `handle_data()`.

    Nothing here reconnects or retries. After "end" or "error", every send
    fails.
    """
    def __init__(
        self,
        stream: StreamSocket | socket.socket | None = None,
        *,
        parser: CommandParser,
        dispatcher: CommandDispatcher,
        is_server: bool = False,
        config: ConnectionConfig | None = None,
        spawner: TaskSpawner | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._config = config or ConnectionConfig()
        self._parser = parser
        self._dispatcher = dispatcher
        self._spawner = spawner or TaskSpawner(self._loop)
        self._emitter = EventEmitter("core.connections.connection")

        self.events: Subscription[tuple[ConnectionEvent, Any]] = Subscription(self._loop)

        # Zero is what BFGMiner starts from; this client starts at 1
        self.next_request_id = 1
        if isinstance(stream, StreamSocket):
            self.socket = stream
        else:
            self.socket = StreamSocket(stream, config=self._config, loop=self._loop)
        self.is_server = is_server
        self.authorized = False
        self.subscription = ""
        self.extranonce1: str | None = None
        self.extranonce2_size: int | None = None
        self.id = str(uuid.uuid4())
        self.last_command: StratumCommand | None = None
        self.last_activity = 0
        self.set_last_activity()

        self._logger = logging.getLogger("core.connections.connection")

        self.socket.on("end", self._on_end)
        self.socket.on("error", self._on_error)
        self.socket.on("drain", self._on_drain)
        self.socket.on("close", self._on_close)

        if not is_server:
            self.socket.on("data", self.handle_data)

    @property
    def state(self) -> AuthState:
        return AuthState.AUTHORIZED if self.authorized else AuthState.UNAUTHORIZED

    def on(self, event: ConnectionEvent | str, listener: Listener) -> Listener:
        return self._emitter.on(event, listener)

    def off(self, event: ConnectionEvent | str, listener: Listener) -> None:
        self._emitter.off(event, listener)

    def set_last_command(self, command: StratumCommand) -> None:
        self.last_command = command

    def set_last_activity(self, time: int | float | None = None) -> None:
        """
        Record the last activity, used to find idle connections.

        `time` is a timestamp in milliseconds; anything that is not a number
        stands for "now".
        """
        if isinstance(time, (int, float)) and not isinstance(time, bool):
            self.last_activity = time
        else:
            self.last_activity = now_millis()

    def address(self) -> SocketAddress:
        return self.socket.address()

    async def connect(
        self,
        address: tuple[str, int],
        ssl_ctx: ssl.SSLContext | None = None,
    ) -> "Connection":
        await self.socket.connect(address, ssl_ctx=ssl_ctx)
        return self

    async def attach(self, ssl_ctx: ssl.SSLContext | None = None) -> "Connection":
        await self.socket.attach(ssl_ctx=ssl_ctx)
        return self

    def close(self, exception: BaseException | None = None) -> None:
        self.socket.destroy(exception)

    def handle_data(self, data: bytes) -> None:
        try:
            parsed = self._parser.parse(data)
        except FrameTooLarge as exc:
            self._logger.warning(f"({self.id}) {exc}, closing connection")
            self.emit(
                ConnectionEvent.PROTOCOL_ERROR,
                ErrorDescriptor(code=int(StratumErrorCode.OTHER), message=str(exc))
            )
            self.close(exc)
            return

        if not parsed.commands:
            return

        self._logger.debug(f"({self.id}) Received {parsed.string!r}")

        pending = self._dispatcher.process(self, parsed.commands)
        if inspect.isawaitable(pending):
            self._spawner.spawn(pending)

    def send(self, data: str | bytes) -> asyncio.Future["Connection"]:
        """
        Write raw data to the peer.

        The returned future resolves with this Connection once the local
        transport has taken the bytes. It says nothing about the peer having
        received them. It fails with TransportWriteFailure otherwise.
        """
        self._logger.debug(f"({self.id}) Sent command {data!r}")

        if isinstance(data, str):
            data = data.encode("utf-8")

        result: asyncio.Future[Connection] = self._loop.create_future()
        written = self.socket.write(data)
        written.add_done_callback(functools.partial(self._on_written, result))
        return result

    def _on_written(self, result: asyncio.Future["Connection"], written: asyncio.Future[None]) -> None:
        if result.done():
            return

        if written.cancelled():
            result.cancel()
        elif (exc := written.exception()) is not None:
            result.set_exception(TransportWriteFailure(self, exc))
        else:
            result.set_result(self)

    def emit(self, event: ConnectionEvent, payload: Any) -> None:
        self._emitter.emit(event, payload)
        self.events.publish((event, payload))

    def _on_end(self) -> None:
        self.emit(ConnectionEvent.END, self)

    def _on_error(self, exc: BaseException) -> None:
        self._logger.debug(f"({self.id}) Socket error: {exc}")
        self.emit(ConnectionEvent.ERROR, self)

    def _on_drain(self) -> None:
        self.emit(ConnectionEvent.DRAIN, self)

    def _on_close(self, had_error: bool) -> None:
        self.events.close()
