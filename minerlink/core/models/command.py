from dataclasses import dataclass, field
from typing import Any


@dataclass
class StratumCommand:
    """
    A single Stratum message in its native Python form.

    Requests and notifications carry a `method` and positional `params`.
    Responses carry no method, only the `id` of the request they answer
    together with a `result` or an `error`. The parser builds these objects
    from decoded lines and the encoder turns them back into wire payloads.
    """
    method: str | None = None
    """
    Name of the remote procedure, e.g. "mining.notify". None for responses.
    """

    id: int | str | None = None
    """
    Request identifier. Notifications pushed by the pool use None.
    """

    params: list[Any] = field(default_factory=list)
    """
    Ordered positional arguments of a request or notification.
    """

    result: Any = None
    """
    Response payload, e.g. `true` for an accepted authorization.
    """

    error: Any = None
    """
    Response error, usually `[code, "message", traceback]`.
    """

    @property
    def is_response(self) -> bool:
        return self.method is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StratumCommand":
        params = data.get("params")
        if params is None:
            params = []
        elif not isinstance(params, list):
            params = [params]

        return cls(
            method=data.get("method"),
            id=data.get("id"),
            params=params,
            result=data.get("result"),
            error=data.get("error"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation of the message."""
        if self.is_response:
            return {"id": self.id, "result": self.result, "error": self.error}
        return {"method": self.method, "id": self.id, "params": list(self.params)}


@dataclass
class ParsedCommands:
    """Output of one CommandParser.parse() call."""

    commands: list[StratumCommand]
    """
    Commands decoded from the complete lines available, in arrival order.
    """

    string: str = ""
    """
    Textual representation of the bytes consumed by this call.
    """
