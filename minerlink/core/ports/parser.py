from typing import Protocol

from minerlink.core.models.command import ParsedCommands


class CommandParser(Protocol):
    """
    Turns raw inbound bytes into discrete Stratum commands.

    The framing rule (newline-delimited JSON objects) belongs to the parser,
    and so does reassembly of lines split across several TCP segments. A
    parser is therefore bound to a single Connection.
    """

    def parse(self, data: bytes) -> ParsedCommands:
        """Consume `data` and return every command that became complete."""
