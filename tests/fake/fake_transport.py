import asyncio
import json


class FakeTransport(asyncio.Transport):
    """
    A minimal in-memory implementation of asyncio.Transport
    intended for tests.

    It records written data into an internal buffer and tracks whether the
    transport has been closed or aborted. It does not perform any real I/O
    and never calls back into its protocol: tests drive the protocol
    callbacks themselves.
    """

    def __init__(self) -> None:
        super().__init__()
        self._buffer = bytearray()
        self._closed = False
        self.aborted = 0
        self._peername = ("127.0.0.1", 3333)
        self._sockname = ("127.0.0.1", 50123)

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self._peername
        if name == "sockname":
            return self._sockname
        return default

    def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Cannot write to closed transport")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError("data must be bytes-like")
        self._buffer.extend(data)

    def close(self) -> None:
        self._closed = True

    def abort(self) -> None:
        self.aborted += 1
        self._closed = True

    def is_closing(self) -> bool:
        return self._closed

    # Optional helpers for tests
    @property
    def buffer(self) -> bytes:
        return bytes(self._buffer)

    def lines(self) -> list[dict]:
        return [json.loads(line) for line in self.buffer.splitlines() if line]
