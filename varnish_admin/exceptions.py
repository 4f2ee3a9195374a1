"""
Exception Definitions

All errors raised by the admin client derive from VarnishError, so callers
(and the pool) can catch a single type.
"""

from typing import Optional


class VarnishError(Exception):
    """
    Base exception of the admin client.

    Attributes:
        response: Response body of the command causing this error, if any
    """

    def __init__(self, message: str, response: Optional[str] = None):
        super().__init__(message)
        self.response = response


class AdminConnectionError(VarnishError):
    """Raised when the management socket could not be opened."""


class AuthError(VarnishError):
    """Raised when the authentication handshake fails."""


class ProtocolError(VarnishError):
    """
    Raised when the wire exchange itself goes wrong.

    Attributes:
        fatal: True when the connection can no longer be trusted and the
            session must be dropped
    """

    def __init__(self, message: str, fatal: bool = False):
        super().__init__(message)
        self.fatal = fatal


class CommandError(VarnishError):
    """
    Raised when a command returned an unexpected status code.

    Attributes:
        command: The command text that was sent
        status: The status code the server returned
        response: Trimmed response body, lines joined for display
    """

    def __init__(self, message: str, command: str, status: int, response: str = ""):
        super().__init__(message, response=response)
        self.command = command
        self.status = status


class ValidationError(VarnishError, ValueError):
    """Raised when caller input is malformed, e.g. a URL without host."""


class DuplicateError(VarnishError):
    """Raised when a server is added twice to a pool."""
