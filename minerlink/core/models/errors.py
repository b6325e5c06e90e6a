from dataclasses import dataclass
from enum import IntEnum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from minerlink.core.connections.connection import Connection


class StratumErrorCode(IntEnum):
    """Error codes used by Stratum pools in `[code, message, traceback]`."""
    OTHER = 20
    JOB_NOT_FOUND = 21
    DUPLICATE_SHARE = 22
    LOW_DIFFICULTY_SHARE = 23
    UNAUTHORIZED_WORKER = 24
    NOT_SUBSCRIBED = 25


_MESSAGES = {
    StratumErrorCode.OTHER: "Other/Unknown",
    StratumErrorCode.JOB_NOT_FOUND: "Job not found",
    StratumErrorCode.DUPLICATE_SHARE: "Duplicate share",
    StratumErrorCode.LOW_DIFFICULTY_SHARE: "Low difficulty share",
    StratumErrorCode.UNAUTHORIZED_WORKER: "Unauthorized worker",
    StratumErrorCode.NOT_SUBSCRIBED: "Not subscribed",
}


@dataclass(frozen=True)
class ErrorDescriptor:
    """
    Payload of a `mining.error` event.

    Mirrors the error triple of the Stratum protocol so that local failures
    (an unauthorized send) and remote failures (an error response from the
    pool) reach listeners in the same shape.
    """
    code: int
    message: str
    traceback: Any = None

    @classmethod
    def of(cls, code: StratumErrorCode) -> "ErrorDescriptor":
        return cls(code=int(code), message=_MESSAGES[code])

    @classmethod
    def from_wire(cls, error: Any) -> "ErrorDescriptor":
        """
        Build a descriptor from the `error` member of a response.

        Pools disagree on the shape: most send `[code, message, tb]`,
        some send `{"code": .., "message": ..}` or a bare string.
        """
        if isinstance(error, (list, tuple)) and error:
            code = error[0] if isinstance(error[0], int) else StratumErrorCode.OTHER
            message = str(error[1]) if len(error) > 1 else _MESSAGES.get(code, "")
            tb = error[2] if len(error) > 2 else None
            return cls(code=int(code), message=message, traceback=tb)

        if isinstance(error, dict):
            code = error.get("code")
            if not isinstance(code, int):
                code = StratumErrorCode.OTHER
            return cls(
                code=int(code),
                message=str(error.get("message", "")),
                traceback=error.get("traceback"),
            )

        return cls(code=int(StratumErrorCode.OTHER), message=str(error))

    def to_list(self) -> list[Any]:
        return [self.code, self.message, self.traceback]


class StratumError(Exception):
    """Base class of every error raised by minerlink."""


class UnauthorizedSend(StratumError):
    """A gated command was sent before the worker was authorized."""

    def __init__(self, descriptor: ErrorDescriptor) -> None:
        super().__init__(descriptor.message)
        self.descriptor = descriptor


class TransportWriteFailure(StratumError):
    """The transport failed to accept or flush an outbound write."""

    def __init__(self, connection: "Connection", error: BaseException) -> None:
        super().__init__(f"({connection.id}) write failed: {error}")
        self.connection = connection
        self.error = error


class TransportTerminated(StratumError, ConnectionResetError):
    """The connection went away while writes were still pending."""


class TransportError(StratumError, ConnectionError):
    """The socket has no usable transport."""


class FrameTooLarge(StratumError):
    """An inbound line grew past the configured buffer limit."""
