from enum import Enum, StrEnum
from typing import NamedTuple


class AuthState(Enum):
    """Authorization gate of a Connection."""
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"


class ConnectionEvent(StrEnum):
    """
    Events a Connection re-emits to its own listeners.

    Lifecycle events carry the Connection itself as payload so a single
    listener can serve many connections. PROTOCOL_ERROR carries an
    ErrorDescriptor.
    """
    END = "end"
    ERROR = "error"
    DRAIN = "drain"
    PROTOCOL_ERROR = "mining.error"


class SocketAddress(NamedTuple):
    address: str
    port: int
    family: str
