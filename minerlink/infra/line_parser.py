import logging

from minerlink.core.models.command import ParsedCommands, StratumCommand
from minerlink.core.models.errors import FrameTooLarge
from minerlink.core.ports.parser import CommandParser
from minerlink.core.ports.serializer import Serializer


class LineCommandParser(CommandParser):
    """
    Newline-delimited JSON framing for one connection.

    Bytes are accumulated in an internal buffer; every complete line is
    decoded into a StratumCommand and the trailing partial line, if any, is
    kept for the next call. Lines split across TCP segments are therefore
    reassembled here.

    Blank lines are skipped. A line that is not a JSON object is logged and
    dropped without affecting the following ones. If the partial line grows
    beyond `max_buffer_size`, the buffer is discarded and FrameTooLarge is
    raised: the stream can no longer be trusted.
    """
    def __init__(self, serializer: Serializer, max_buffer_size: int = 1024 * 1024) -> None:
        self._serializer = serializer
        self._max_buffer_size = max_buffer_size
        self._buffer = bytearray()
        self._logger = logging.getLogger("infra.line_parser")

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    def parse(self, data: bytes) -> ParsedCommands:
        self._buffer.extend(data)

        end = self._buffer.rfind(b"\n")
        if end < 0:
            self._check_size()
            return ParsedCommands(commands=[])

        consumed = bytes(self._buffer[:end + 1])
        del self._buffer[:end + 1]
        self._check_size()

        commands = []
        for line in consumed.split(b"\n"):
            line = line.strip()
            if not line:
                continue

            command = self._decode(line)
            if command is not None:
                commands.append(command)

        return ParsedCommands(
            commands=commands,
            string=consumed.decode("utf-8", errors="replace"),
        )

    def _check_size(self) -> None:
        if len(self._buffer) > self._max_buffer_size:
            size = len(self._buffer)
            self._buffer.clear()
            raise FrameTooLarge(
                f"Incomplete line of {size} bytes exceeds {self._max_buffer_size} bytes"
            )

    def _decode(self, line: bytes) -> StratumCommand | None:
        try:
            payload = self._serializer.deserialize(line)
        except ValueError as exc:
            self._logger.warning(f"Invalid JSON line {line[:80]!r}: {exc}")
            return None

        if not isinstance(payload, dict):
            self._logger.warning(f"Ignoring non-object line {line[:80]!r}")
            return None

        return StratumCommand.from_dict(payload)
