"""
Frame Codec Module

This module handles encoding of commands and decoding of response frames
on a connected byte stream.
"""

import socket
from typing import BinaryIO

from ..config.settings import settings
from ..exceptions import ProtocolError
from .frame import STATUS_LINE_PATTERN, Frame


class FrameCodec:
    """
    Codec for the management protocol framing.

    The stream is a buffered binary file object, normally obtained with
    ``socket.makefile("rwb")``. Reads block until the socket timeout set
    by the session.

    Usage:
        codec = FrameCodec(sock.makefile("rwb"))
        codec.write_command("ping")
        frame = codec.read_frame()
    """

    def __init__(self, stream: BinaryIO, buffer_size: int = None):
        """
        Initialize the codec.

        Args:
            stream: Binary stream to read frames from and write commands to
            buffer_size: Maximum bytes read per line (default from settings)
        """
        self.stream = stream
        self.buffer_size = buffer_size if buffer_size is not None else settings.READ_BUFFER_SIZE

    def read_frame(self) -> Frame:
        """
        Read one response frame from the stream.

        Lines are skipped until a status line is found, then the declared
        number of body bytes is read.

        Returns:
            The decoded Frame

        Raises:
            ProtocolError: no status line, read timeout or truncated body
        """
        status = None
        length = 0
        at_line_start = True

        while status is None:
            line = self._read(self.stream.readline, self.buffer_size)
            if not line:
                raise ProtocolError("no status line", fatal=True)

            if at_line_start:
                match = STATUS_LINE_PATTERN.match(line)
                if match:
                    status = int(match.group(1))
                    length = int(match.group(2))

            # Long lines come back in pieces; only a fresh line can hold a status
            at_line_start = line.endswith(b"\n")

        body = b""
        while len(body) < length:
            chunk = self._read(self.stream.read, length - len(body))
            if not chunk:
                raise ProtocolError(
                    f"truncated body: expected {length} bytes, got {len(body)}",
                    fatal=True,
                )
            body += chunk

        return Frame(status=status, body=body)

    def write_command(self, command: str) -> None:
        """
        Write a single command terminated by a newline.

        Args:
            command: Command text without trailing newline

        Raises:
            ProtocolError: empty command, embedded newline or incomplete write
        """
        if not command or not command.strip():
            raise ProtocolError("empty command")
        if "\n" in command:
            raise ProtocolError("command may not contain a newline")

        payload = (command + "\n").encode("utf-8")
        try:
            written = self.stream.write(payload)
            self.stream.flush()
        except socket.timeout as exc:
            raise ProtocolError("write timeout", fatal=True) from exc
        except OSError as exc:
            raise ProtocolError(f"write failed: {exc}", fatal=True) from exc

        if written is not None and written != len(payload):
            raise ProtocolError(
                f"incomplete write: {written} of {len(payload)} bytes",
                fatal=True,
            )

    @staticmethod
    def _read(reader, size: int) -> bytes:
        """Run a stream read, translating socket failures."""
        try:
            return reader(size)
        except socket.timeout as exc:
            raise ProtocolError("read timeout", fatal=True) from exc
        except OSError as exc:
            raise ProtocolError(f"read failed: {exc}", fatal=True) from exc
