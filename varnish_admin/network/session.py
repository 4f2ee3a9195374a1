"""
Session Module

This module owns one management socket: connection establishment, the
challenge-response handshake and the command/response exchange.

A session is either DISCONNECTED or CONNECTED. Any I/O failure forces it
back to DISCONNECTED before the error reaches the caller, so the next
execute() reconnects instead of reusing a broken socket.
"""

import hashlib
import logging
import socket
from enum import Enum
from typing import Callable, Optional

from ..config.settings import settings
from ..exceptions import AdminConnectionError, AuthError, CommandError, ProtocolError, VarnishError
from ..protocol.codec import FrameCodec
from ..protocol.frame import Frame, StatusCode
from .endpoint import Endpoint

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Connection state of a session."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def challenge_response(challenge: str, secret: str) -> str:
    """
    Compute the answer to an authentication challenge.

    Args:
        challenge: The challenge sent in the banner
        secret: The shared secret

    Returns:
        Hex encoded SHA-256 digest to send with the auth command
    """
    payload = f"{challenge}\n{secret}\n{challenge}\n"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class Session:
    """
    Blocking session with a single management port.

    Access to one session must be serialized by the caller; the protocol
    is strictly request/reply.

    Usage:
        with Session("127.0.0.1", 6082, secret="s3cr3t") as session:
            frame = session.execute("status")

    Attributes:
        endpoint: Host, port and secret of the server
        timeout: Default timeout used for connect and reads
        log: Optional logger receiving a debug event per command sent
            and per response received
        state: Current SessionState
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            secret: Optional[str] = None,
            timeout: float = None,
            log: Optional[logging.Logger] = None,
            connection_factory: Callable[..., socket.socket] = None,
    ):
        """
        Initialize a disconnected session.

        Args:
            host: Hostname or IP address (default from settings)
            port: Management port (default from settings)
            secret: Shared secret (default from settings)
            timeout: Connect and read timeout in seconds (default from settings)
            log: Logger for command diagnostics
            connection_factory: Callable opening the socket, called as
                factory((host, port), timeout)
        """
        self.endpoint = Endpoint(
            host=host if host is not None else settings.HOST,
            port=port if port is not None else settings.PORT,
            secret=secret if secret is not None else settings.SECRET,
        )
        self.timeout = timeout if timeout is not None else settings.TIMEOUT
        self.log = log
        self._connection_factory = connection_factory or socket.create_connection

        self.state = SessionState.DISCONNECTED
        self._socket: Optional[socket.socket] = None
        self._codec: Optional[FrameCodec] = None

    @property
    def is_connected(self) -> bool:
        """Check if the session holds an open connection."""
        return self.state is SessionState.CONNECTED

    def connect(self, timeout: float = None) -> Optional[str]:
        """
        Connect to the management port and authenticate when asked to.

        Args:
            timeout: Connect and read timeout in seconds (default: session timeout)

        Returns:
            The banner text when a connection was made, None when the
            session was already connected

        Raises:
            AdminConnectionError: the socket could not be opened
            AuthError: authentication is required but failed
            ProtocolError: the banner could not be read or was unexpected
        """
        if self.is_connected:
            return None

        timeout = timeout if timeout is not None else self.timeout
        address = (self.endpoint.host, self.endpoint.port)

        try:
            sock = self._connection_factory(address, timeout)
            sock.settimeout(timeout)
        except OSError as exc:
            raise AdminConnectionError(f"Could not connect to {self.endpoint}: {exc}") from exc

        self._socket = sock
        self._codec = FrameCodec(sock.makefile("rwb"))
        self.state = SessionState.CONNECTED
        logger.debug(f"Connected to {self.endpoint}")

        try:
            banner = self._codec.read_frame()
        except ProtocolError:
            self.disconnect()
            raise

        if banner.status == StatusCode.AUTH:
            banner = self._authenticate(banner)

        if banner.status != StatusCode.OK:
            self.disconnect()
            raise ProtocolError(f"unexpected banner status {banner.status} from {self.endpoint}")

        return banner.text

    def _authenticate(self, banner: Frame) -> Frame:
        """Answer the challenge in the banner, returning the new banner."""
        if not self.endpoint.secret:
            self.disconnect()
            raise AuthError(
                f"Could not connect to {self.endpoint}: secret required, "
                "authentication is enabled on the server"
            )

        challenge = banner.body[:settings.CHALLENGE_LENGTH].decode("utf-8", errors="replace")
        digest = challenge_response(challenge, self.endpoint.secret)

        try:
            frame = self.execute(f"auth {digest}")
        except VarnishError as exc:
            self.disconnect()
            raise AuthError(f"Could not connect to {self.endpoint}: authentication failed") from exc

        logger.debug(f"Authenticated with {self.endpoint}")
        return frame

    def execute(self, command: str, required_status: Optional[int] = StatusCode.OK) -> Frame:
        """
        Send a command and read its response, connecting first if needed.

        Args:
            command: Command text without trailing newline
            required_status: Status the response must carry, None to accept any

        Returns:
            The response Frame

        Raises:
            CommandError: the status differs from required_status
            ProtocolError: the exchange failed; fatal errors drop the connection
        """
        if not self.is_connected:
            self.connect()

        if self.log is not None:
            self.log.debug(
                "Executing command on %s", self.endpoint,
                extra={"context": command, "source": settings.LOG_SOURCE},
            )

        try:
            self._codec.write_command(command)
            frame = self._codec.read_frame()
        except ProtocolError as exc:
            if exc.fatal:
                logger.debug(f"Dropping connection to {self.endpoint}: {exc}")
                self.disconnect()
            raise

        if self.log is not None:
            self.log.debug(
                "Received response from %s", self.endpoint,
                extra={"context": frame.status, "source": settings.LOG_SOURCE},
            )

        if required_status is not None and frame.status != required_status:
            raise CommandError(
                f"Could not execute command on {self.endpoint}: "
                f"command `{command}` returned code {frame.status}",
                command=command,
                status=frame.status,
                response=frame.describe(),
            )

        return frame

    def disconnect(self) -> None:
        """Close the connection if open. Safe to call repeatedly."""
        if self._codec is not None:
            try:
                self._codec.stream.close()
            except OSError as exc:
                logger.debug(f"Error closing stream to {self.endpoint}: {exc}")
            self._codec = None

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError as exc:
                logger.debug(f"Error closing socket to {self.endpoint}: {exc}")
            self._socket = None
            logger.debug(f"Disconnected from {self.endpoint}")

        self.state = SessionState.DISCONNECTED

    def quit(self) -> None:
        """Send quit when connected, then always disconnect."""
        if self.is_connected:
            try:
                self.execute("quit", required_status=StatusCode.CLOSE)
            except VarnishError as exc:
                logger.debug(f"Quit on {self.endpoint} failed: {exc}")

        self.disconnect()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.quit()

    def __repr__(self) -> str:
        return f"Session(endpoint={self.endpoint}, state={self.state.value})"
