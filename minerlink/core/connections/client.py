import asyncio
import logging
from collections import deque
from typing import Any

from minerlink.core.connections.connection import Connection
from minerlink.core.models.command import StratumCommand
from minerlink.core.models.errors import ErrorDescriptor, StratumErrorCode, UnauthorizedSend
from minerlink.core.models.state import ConnectionEvent
from minerlink.core.ports.serializer import Serializer

HTTP_PROBE_RESULT = '{"error": null, "result": false, "id": 0}'


class StratumClient(Connection):
    """
    Connection that speaks the client side of Stratum.

    Builds the outbound requests (subscribe, authorize, submit), enforces the
    authorization gate and answers legacy HTTP probes. `mining.subscribe` and
    `mining.authorize` always go through; any other request is refused
    locally until `authorized` is set, unless explicitly bypassed.

    Every request carries `next_request_id`, which is not advanced: replies
    are never correlated by id at this layer.
    """
    def __init__(self, *args: Any, serializer: Serializer, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._serializer = serializer
        self.awaiting_authorization = False
        # Methods of the requests sent so far and not answered yet, oldest first
        self.outstanding: deque[str] = deque()
        self._logger = logging.getLogger("core.connections.client")

    def subscribe(self, user_agent: str | None = None) -> asyncio.Future[Connection]:
        command = StratumCommand(
            method="mining.subscribe",
            id=self.next_request_id,
            params=[user_agent] if user_agent is not None else [],
        )
        return self.send_raw(command.to_dict(), bypass=True)

    def authorize(self, user: str, password: str) -> asyncio.Future[Connection]:
        self.awaiting_authorization = True
        command = StratumCommand(
            method="mining.authorize",
            id=self.next_request_id,
            params=[user, password],
        )
        return self.send_raw(command.to_dict(), bypass=True)

    def submit(
        self,
        worker: str,
        job_id: str,
        extranonce2: str,
        ntime: str,
        nonce: str,
    ) -> asyncio.Future[Connection]:
        """Send a share. Refused locally before authorization."""
        self.set_last_activity()

        command = StratumCommand(
            method="mining.submit",
            id=self.next_request_id,
            params=[worker, job_id, extranonce2, ntime, nonce],
        )
        return self.send_raw(command.to_dict())

    def send_raw(self, payload: dict[str, Any], bypass: bool = False) -> asyncio.Future[Connection]:
        if self.authorized or bypass:
            line = self._serializer.serialize(payload) + b"\n"
            if payload.get("method"):
                self.outstanding.append(payload["method"])
            return self.send(line)

        error = ErrorDescriptor.of(StratumErrorCode.UNAUTHORIZED_WORKER)
        self._logger.debug(f"({self.id}) {error.message}: {payload.get('method')}")
        self.emit(ConnectionEvent.PROTOCOL_ERROR, error)

        refused: asyncio.Future[Connection] = self._loop.create_future()
        refused.set_exception(UnauthorizedSend(error))
        return refused

    def send_http_header(self, hostname: str, port: int) -> asyncio.Future[Connection]:
        """
        Answer a miner that probed the port with HTTP, pointing it to the
        Stratum URI. The layout is byte-exact with what such miners expect,
        including the off-by-one Content-Length.
        """
        header = [
            "HTTP/1.1 200 OK",
            f"X-Stratum: stratum+tcp://{hostname}:{port}",
            "Connection: Close",
            f"Content-Length: {len(HTTP_PROBE_RESULT.encode('utf-8')) + 1}",
            "",
            "",
            HTTP_PROBE_RESULT,
        ]

        self._logger.debug("Sending Stratum HTTP header")

        return self.send("\n".join(header))

    # Called by the dispatcher on pool notifications; not client commands.

    def set_difficulty(self, args: list[Any]) -> Any:
        return self._dispatcher.set_difficulty(self, *args)

    def notify(self, args: list[Any]) -> Any:
        return self._dispatcher.notify(self, *args)
