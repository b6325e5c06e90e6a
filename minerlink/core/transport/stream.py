import asyncio
import logging
import socket
import ssl
import sys
from typing import Any

from minerlink.core.helpers.emitter import EventEmitter, Listener
from minerlink.core.models.config import ConnectionConfig
from minerlink.core.models.errors import TransportError, TransportTerminated
from minerlink.core.models.state import SocketAddress
from minerlink.core.transport.flow import FlowControl

logger = logging.getLogger("core.transport.stream")


def create_socket(family: socket.AddressFamily = socket.AF_INET) -> socket.socket:
    """Create a non-blocking TCP socket able to connect outwards."""
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setblocking(False)
    return sock


def configure_socket(sock: Any, no_delay: bool = True, keepalive_interval: int = 120) -> Any:
    """
    Apply the low-latency and keep-alive policy to `sock`.

    Works on plain sockets and on the socket wrappers exposed by asyncio
    transports. Options the platform does not know are skipped, and failures
    are only logged: a misconfigured socket still carries traffic.
    """
    options: list[tuple[int, int, int]] = [
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
    ]
    if no_delay:
        options.append((socket.IPPROTO_TCP, socket.TCP_NODELAY, 1))

    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, keepalive_interval))
    elif sys.platform == "darwin" and hasattr(socket, "TCP_KEEPALIVE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPALIVE, keepalive_interval))

    if hasattr(socket, "TCP_KEEPINTVL"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, keepalive_interval))

    for level, option, value in options:
        try:
            sock.setsockopt(level, option, value)
        except OSError as exc:
            logger.debug(f"Unable to set socket option {option}={value}: {exc}")

    return sock


class StreamSocket(asyncio.Protocol):
    """
    A configured TCP stream with an event-based surface.

    StreamSocket owns one socket and acts as the asyncio protocol of the
    transport created on top of it. Transport callbacks are republished as
    named events so that the owner subscribes instead of subclassing:

    - "data" (bytes): inbound bytes, as delivered by the transport
    - "end": the remote side closed its writing half
    - "error" (exception): the transport failed, or was destroyed with a reason
    - "drain": the write buffer went back below its high-water mark
    - "close" (had_error): the transport is gone

    Each `write()` returns a future that completes when the transport has
    taken the bytes (see FlowControl) and fails when the write cannot be
    done. A socket is destroyed at most once.
    """
    def __init__(
        self,
        sock: socket.socket | None = None,
        config: ConnectionConfig | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()
        self._loop = loop or asyncio.get_running_loop()

        if sock is None:
            sock = create_socket(self._config.family)
        else:
            sock.setblocking(False)

        self._sock: Any = self._configure(sock)
        self._transport: asyncio.Transport | None = None
        self._flow = FlowControl()
        self._emitter = EventEmitter("core.transport.stream")
        self._destroyed = False
        self._reason: BaseException | None = None

        self.error: BaseException | None = None
        """Last failure reported through the "error" event."""

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def on(self, event: str, listener: Listener) -> Listener:
        return self._emitter.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self._emitter.off(event, listener)

    async def connect(
        self,
        address: tuple[str, int],
        ssl_ctx: ssl.SSLContext | None = None,
    ) -> None:
        """
        Connect the socket to `address` and install this protocol on it.

        Host names are resolved by the event loop. No timeout is applied.
        """
        host, port = address
        await self._loop.sock_connect(self._sock, (host, port))
        await self._loop.create_connection(
            lambda: self,
            sock=self._sock,
            ssl=ssl_ctx,
            server_hostname=host if ssl_ctx else None,
        )

    async def attach(self, ssl_ctx: ssl.SSLContext | None = None) -> None:
        """Install this protocol on a socket that is already connected."""
        await self._loop.connect_accepted_socket(lambda: self, self._sock, ssl=ssl_ctx)

    def address(self) -> SocketAddress:
        if self._transport is None or self._transport.is_closing():
            raise ConnectionError("Socket is not connected")

        sockname = self._transport.get_extra_info("sockname")
        if not sockname:
            raise ConnectionError("Socket is not bound")

        family = "IPv6" if self._sock.family == socket.AF_INET6 else "IPv4"
        return SocketAddress(address=sockname[0], port=sockname[1], family=family)

    def write(self, data: bytes) -> asyncio.Future[None]:
        waiter = self._loop.create_future()

        if self._transport is None or self._transport.is_closing():
            waiter.set_exception(TransportError("Socket is not writable"))
            return waiter

        try:
            self._transport.write(data)
        except Exception as exc:
            waiter.set_exception(exc)
            return waiter

        if self._flow.write_paused:
            self._flow.track(waiter)
        else:
            waiter.set_result(None)

        return waiter

    def destroy(self, exc: BaseException | None = None) -> None:
        """
        Tear the connection down without flushing.

        `exc`, when given, is reported through the "error" event.
        """
        if self._destroyed:
            return

        self._destroyed = True
        self._reason = exc

        if self._transport is None:
            self._sock.close()
            self._flow.abort(exc or TransportTerminated("Socket destroyed"))
            if exc is not None:
                self.error = exc
                self._emitter.emit("error", exc)
            self._emitter.emit("close", exc is not None)
            return

        self._transport.abort()

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]

        sock = transport.get_extra_info("socket")
        if sock is not None and sock.fileno() != self._sock.fileno():
            # Accepted by a server: the adapter's own socket was never used
            self._sock.close()
            self._sock = self._configure(sock)

        who = transport.get_extra_info("peername")
        logger.debug(f"{who} - Connection made")

    def connection_lost(self, exc: Exception | None) -> None:
        error = exc or self._reason
        self._destroyed = True

        who = self._transport.get_extra_info("peername") if self._transport else None
        logger.debug(f"{who} - Connection lost: {error}")

        self._flow.abort(error or TransportTerminated("Connection lost"))

        if error is not None:
            self.error = error
            self._emitter.emit("error", error)

        self._emitter.emit("close", error is not None)

    def eof_received(self) -> None:
        self._emitter.emit("end")

    def data_received(self, data: bytes) -> None:
        self._emitter.emit("data", data)

    def pause_writing(self) -> None:
        self._flow.pause_writing()

    def resume_writing(self) -> None:
        self._flow.resume_writing()
        self._emitter.emit("drain")

    def _configure(self, sock: Any) -> Any:
        return configure_socket(
            sock,
            no_delay=self._config.no_delay,
            keepalive_interval=self._config.keepalive_interval,
        )
