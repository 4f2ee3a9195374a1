"""
Protocol Frame and Status Definitions

This module defines the data structures of the management protocol.

Protocol Format:
    Request:  <command> [ARGS...]\\n
    Response: <status> <length>\\n<length bytes of body>\\n
"""

import re
from dataclasses import dataclass
from enum import IntEnum


# Status line: 3-digit code, a space, the body length
STATUS_LINE_PATTERN = re.compile(rb"^(\d{3}) (\d+)")


class StatusCode(IntEnum):
    """Status codes sent by the management port."""
    SYNTAX = 100
    UNKNOWN = 101
    UNIMPL = 102
    TOOFEW = 104
    TOOMANY = 105
    PARAM = 106
    AUTH = 107
    OK = 200
    CANT = 300
    COMMS = 400
    CLOSE = 500


@dataclass
class Frame:
    """
    One response unit read from the management port.

    Attributes:
        status: The 3-digit status code
        body: Exactly the number of bytes declared on the status line
    """
    status: int
    body: bytes = b""

    @property
    def length(self) -> int:
        """Length of the body in bytes."""
        return len(self.body)

    @property
    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def is_ok(self) -> bool:
        """Check if the frame carries the OK status."""
        return self.status == StatusCode.OK

    def describe(self) -> str:
        """Body trimmed and joined for display in error messages."""
        return "\n > ".join(self.text.strip().split("\n"))
