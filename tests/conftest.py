"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import io
import threading
from typing import Dict, Generator, List, Optional, Tuple

import pytest

from varnish_admin.admin.commands import VarnishAdmin
from varnish_admin.network.session import Session, challenge_response


# ============================================================================
# In-memory Streams
# ============================================================================

class FakeStream:
    """
    Binary stream standing in for socket.makefile("rwb").

    Reads come from the given data; writes are collected in output.
    """

    def __init__(
            self,
            data: bytes = b"",
            write_limit: Optional[int] = None,
            read_error: Optional[Exception] = None,
            write_error: Optional[Exception] = None,
    ):
        self.input = io.BytesIO(data)
        self.output = io.BytesIO()
        self.write_limit = write_limit
        self.read_error = read_error
        self.write_error = write_error
        self.closed = False

    def feed(self, data: bytes) -> None:
        """Append data to the unread input."""
        position = self.input.tell()
        self.input.seek(0, io.SEEK_END)
        self.input.write(data)
        self.input.seek(position)

    def readline(self, size: int = -1) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.input.readline(size)

    def read(self, size: int = -1) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return self.input.read(size)

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        if self.write_limit is not None:
            data = data[:self.write_limit]
        self.output.write(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    @property
    def written(self) -> bytes:
        return self.output.getvalue()


class FakeSocket:
    """Socket handing out a single FakeStream from makefile()."""

    def __init__(self, stream: FakeStream):
        self.stream = stream
        self.timeout = None
        self.closed = False

    def settimeout(self, timeout: float) -> None:
        self.timeout = timeout

    def makefile(self, mode: str = "r") -> FakeStream:
        return self.stream

    def close(self) -> None:
        self.closed = True


def frame_bytes(status: int, body: str = "") -> bytes:
    """Encode a response the way the management port does."""
    data = body.encode()
    return b"%-3d %-8d\n" % (status, len(data)) + data + b"\n"


@pytest.fixture
def make_stream():
    """Factory for FakeStream instances."""
    return FakeStream


@pytest.fixture
def encode_frame():
    """Encoder for raw response frames."""
    return frame_bytes


@pytest.fixture
def socket_factory():
    """
    Connection factory for sessions that records every connect.

    Usage:
        def test_something(socket_factory):
            socket_factory.streams.append(FakeStream(frame_bytes(200, "hi")))
            session = Session(connection_factory=socket_factory)
    """

    class Factory:
        def __init__(self):
            self.streams: List[FakeStream] = []
            self.sockets: List[FakeSocket] = []
            self.addresses: List[Tuple[Tuple[str, int], float]] = []
            self.error: Optional[OSError] = None

        def __call__(self, address, timeout):
            self.addresses.append((address, timeout))
            if self.error is not None:
                raise self.error
            sock = FakeSocket(self.streams.pop(0))
            self.sockets.append(sock)
            return sock

    return Factory()


# ============================================================================
# Fake Management Port
# ============================================================================

class FakeVarnishAdm:
    """
    Scripted management port of a Varnish daemon.

    Keeps a small amount of daemon state (child state, loaded
    configurations, panic, bans) and answers the commands the client
    sends. Tests can override any reply through ``replies``:

        fake.replies["status"] = (300, "oops")   # fixed reply
        fake.replies["status"] = "close"         # drop the connection
        fake.replies["status"] = "truncate"      # announce more body than sent
        fake.replies["status"] = "silent"        # never answer
    """

    def __init__(self, secret: Optional[str] = None):
        self.secret = secret
        self.challenge = "a" * 32
        self.banner_status = 200
        self.running = True
        self.vcls: Dict[str, bool] = {"boot": True}
        self.sources: Dict[str, str] = {"boot": "vcl 4.1;\nbackend default { .host = \"127.0.0.1\"; }"}
        self.panic: Optional[str] = None
        self.parameters: Dict[str, str] = {}
        self.bans: List[str] = []
        self.replies: Dict[str, object] = {}
        self.received: List[str] = []
        self.connections = 0

        self.host = "127.0.0.1"
        self.port = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    # Lifecycle

    def start(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        if not self._ready.wait(5):
            raise RuntimeError("fake management port did not start")

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._server = self._loop.run_until_complete(
            asyncio.start_server(self.handle_client, self.host, 0)
        )
        self.port = self._server.sockets[0].getsockname()[1]
        self._ready.set()

        self._loop.run_forever()

        self._server.close()
        tasks = asyncio.all_tasks(self._loop)
        for task in tasks:
            task.cancel()
        self._loop.run_until_complete(asyncio.gather(*tasks, return_exceptions=True))
        self._loop.close()

    def stop(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(5)

    # Protocol

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        authenticated = self.secret is None

        try:
            if authenticated:
                writer.write(frame_bytes(self.banner_status, "-----------------------------\nVarnish Cache CLI 1.0\n"))
            else:
                writer.write(frame_bytes(107, f"{self.challenge}\n\nAuthentication required.\n"))
            await writer.drain()

            while True:
                data = await reader.readline()
                if not data:
                    break

                command = data.decode().rstrip("\n")
                self.received.append(command)

                if not authenticated:
                    expected = "auth " + challenge_response(self.challenge, self.secret)
                    if command == expected:
                        authenticated = True
                        writer.write(frame_bytes(200, "Varnish Cache CLI 1.0\n"))
                    else:
                        writer.write(frame_bytes(107, f"{self.challenge}\n\nAuthentication required.\n"))
                    await writer.drain()
                    continue

                reply = self.replies.get(command.split(" ", 1)[0])
                if reply == "close":
                    break
                if reply == "silent":
                    continue
                if reply == "truncate":
                    writer.write(b"200 100     \npartial")
                    await writer.drain()
                    break

                status, body = reply if reply is not None else self.respond(command)
                writer.write(frame_bytes(status, body))
                await writer.drain()

                if command == "quit":
                    break
        except ConnectionResetError:
            pass
        finally:
            writer.close()

    def respond(self, command: str) -> Tuple[int, str]:
        """Answer a command from the daemon state."""
        name, _, args = command.partition(" ")

        if name == "quit":
            return 500, "Closing CLI connection"
        if name == "ping":
            return 200, "PONG 1700000000 1.0"
        if name == "status":
            return 200, f"Child in state {'running' if self.running else 'stopped'}"
        if name == "start":
            if self.running:
                return 300, "Child in state running"
            self.running = True
            return 200, ""
        if name == "stop":
            if not self.running:
                return 300, "Child in state stopped"
            self.running = False
            return 200, ""
        if name == "vcl.list":
            lines = [
                f"{'active' if active else 'available':<10}  auto/warm          0 {vcl}"
                for vcl, active in self.vcls.items()
            ]
            return 200, "\n".join(lines) + "\n"
        if name == "vcl.show":
            if args not in self.sources:
                return 106, f"No VCL named {args} known."
            return 200, self.sources[args]
        if name in ("vcl.load", "vcl.inline"):
            vcl, _, source = args.partition(" ")
            if vcl in self.vcls:
                return 106, f"Already a VCL program named {vcl}"
            self.vcls[vcl] = False
            self.sources[vcl] = source
            return 200, "VCL compiled."
        if name == "vcl.use":
            if args not in self.vcls:
                return 106, f"No VCL named {args} known."
            self.vcls = {vcl: vcl == args for vcl in self.vcls}
            return 200, f"VCL '{args}' now active"
        if name == "vcl.discard":
            if args not in self.vcls:
                return 106, f"No VCL named {args} known."
            if self.vcls[args]:
                return 106, "Cannot discard active VCL program"
            del self.vcls[args]
            del self.sources[args]
            return 200, ""
        if name == "param.set":
            param, _, value = args.partition(" ")
            self.parameters[param] = value
            return 200, ""
        if name == "panic.show":
            if self.panic is None:
                return 300, "Child has not panicked or panic has been cleared"
            return 200, self.panic
        if name == "panic.clear":
            if self.panic is None:
                return 300, "No panic to clear"
            self.panic = None
            return 200, ""
        if name == "ban":
            self.bans.append(args)
            return 200, ""

        return 101, "Unknown request.\nType 'help' for more info."


@pytest.fixture
def fake_varnish() -> Generator[FakeVarnishAdm, None, None]:
    """Start a fake management port without authentication."""
    fake = FakeVarnishAdm()
    fake.start()
    yield fake
    fake.stop()


@pytest.fixture
def fake_varnish_auth() -> Generator[FakeVarnishAdm, None, None]:
    """Start a fake management port requiring the secret 's3cr3t'."""
    fake = FakeVarnishAdm(secret="s3cr3t")
    fake.start()
    yield fake
    fake.stop()


@pytest.fixture
def fake_varnish_factory():
    """
    Factory fixture starting extra fake management ports.

    Usage:
        def test_something(fake_varnish_factory):
            first, second = fake_varnish_factory(), fake_varnish_factory()
    """
    started: List[FakeVarnishAdm] = []

    def factory(secret: Optional[str] = None) -> FakeVarnishAdm:
        fake = FakeVarnishAdm(secret=secret)
        fake.start()
        started.append(fake)
        return fake

    yield factory

    for fake in started:
        fake.stop()


@pytest.fixture
def session(fake_varnish) -> Generator[Session, None, None]:
    """Session on the unauthenticated fake port."""
    sess = Session(fake_varnish.host, fake_varnish.port, timeout=2)
    yield sess
    sess.disconnect()


@pytest.fixture
def admin(fake_varnish) -> Generator[VarnishAdmin, None, None]:
    """VarnishAdmin on the unauthenticated fake port."""
    adm = VarnishAdmin(fake_varnish.host, fake_varnish.port, timeout=2)
    yield adm
    adm.disconnect()
