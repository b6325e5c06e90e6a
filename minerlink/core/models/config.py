import socket
from dataclasses import dataclass


@dataclass
class ConnectionConfig:
    """
    Runtime parameters of a single Stratum connection.

    This structure is what the core consumes. The bootstrap layer builds it
    from the validated settings file.
    """
    no_delay: bool = True
    """
    Disable Nagle's algorithm so that small JSON lines leave immediately.
    """

    keepalive_interval: int = 120
    """
    Seconds of idleness before TCP keep-alive probes start, and between probes.
    """

    max_buffer_size: int = 1 * 1024 * 1024  # 1MB
    """
    Maximum size of a partial inbound line kept by the parser.
    """

    family: socket.AddressFamily = socket.AF_INET
    """
    Address family of sockets created by the adapter when none is supplied.
    """
