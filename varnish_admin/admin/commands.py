"""
Varnish Admin Command Set

Typed operations on a single server, each expressed as one or more
protocol commands executed through a Session.
"""

import logging
from typing import Dict, Iterable, Optional

from ..config.settings import settings
from ..exceptions import CommandError, ProtocolError, VarnishError
from ..network.session import Session
from ..protocol.frame import Frame, StatusCode
from .ban import url_ban_expression
from .server import VarnishServer

logger = logging.getLogger(__name__)

RUNNING_PREFIX = "Child in state "


class VarnishAdmin(VarnishServer):
    """
    Administration of a single Varnish server.

    Usage:
        admin = VarnishAdmin("127.0.0.1", 6082, secret="s3cr3t")
        if not admin.is_running():
            admin.start()
        admin.ban_url("http://example.com/news", recursive=True)
        admin.quit()

    Attributes:
        session: The Session all commands go through
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            secret: Optional[str] = None,
            timeout: float = None,
            log: Optional[logging.Logger] = None,
            session: Optional[Session] = None,
    ):
        """
        Initialize the admin for a server.

        Args:
            host: Hostname or IP address (default from settings)
            port: Management port (default from settings)
            secret: Shared secret for authentication
            timeout: Connect and read timeout in seconds
            log: Logger for command diagnostics
            session: Existing session to use instead of building one
        """
        if session is None:
            session = Session(host=host, port=port, secret=secret, timeout=timeout, log=log)
        self.session = session

    @property
    def host(self) -> str:
        return self.session.endpoint.host

    @property
    def port(self) -> int:
        return self.session.endpoint.port

    @property
    def secret(self) -> Optional[str]:
        return self.session.endpoint.secret

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    def __str__(self) -> str:
        return self.session.endpoint.identity

    def __repr__(self) -> str:
        return f"VarnishAdmin({self})"

    # Session passthrough

    def connect(self, timeout: float = None) -> Optional[str]:
        """Connect to the server, see Session.connect()."""
        return self.session.connect(timeout)

    def disconnect(self) -> None:
        self.session.disconnect()

    def quit(self) -> None:
        self.session.quit()

    def execute(self, command: str, required_status: Optional[int] = StatusCode.OK) -> Frame:
        """Execute a raw command, see Session.execute()."""
        return self.session.execute(command, required_status)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.quit()

    # Cache process

    def ping(self) -> int:
        """
        Ping the server.

        Returns:
            Timestamp of the server

        Raises:
            ProtocolError: the response holds no numeric timestamp
        """
        response = self.execute("ping").text
        tokens = response.split()
        if len(tokens) < 2 or not tokens[1].isdecimal():
            raise ProtocolError(f"unexpected ping response from {self}: {response.strip()!r}")
        return int(tokens[1])

    def is_running(self) -> bool:
        """
        Check if the cache process is running.

        Any failure is reported as not running.
        """
        try:
            response = self.execute("status").text
        except VarnishError as exc:
            logger.debug(f"Status of {self} unavailable: {exc}")
            return False

        if not response.startswith(RUNNING_PREFIX):
            return False

        return response[len(RUNNING_PREFIX):].strip() == "running"

    def start(self) -> bool:
        if self.is_running():
            return False

        self.execute("start")
        return True

    def stop(self) -> bool:
        if not self.is_running():
            return False

        self.execute("stop")
        return True

    # Configurations

    def get_vcl_list(self) -> Dict[str, bool]:
        """
        Get all loaded configurations.

        Returns:
            Mapping of configuration name to its active flag
        """
        vcl_list = {}

        for line in self.execute("vcl.list").text.split("\n"):
            tokens = line.split()
            if not tokens:
                continue

            vcl_list[tokens[-1]] = tokens[0] == "active"

        return vcl_list

    def get_vcl(self, name: str) -> str:
        """Get the VCL source of a configuration."""
        return self.execute(f"vcl.show {name}").text

    def get_active_vcl(self, vcl_list: Optional[Dict[str, bool]] = None) -> Optional[str]:
        """
        Get the VCL source of the active configuration.

        Args:
            vcl_list: Result of get_vcl_list(), fetched when not provided

        Returns:
            The active VCL, or None when no configuration is active
        """
        if vcl_list is None:
            vcl_list = self.get_vcl_list()

        for name, active in vcl_list.items():
            if active:
                return self.get_vcl(name)

        return None

    def generate_configuration_name(
            self,
            vcl_list: Optional[Dict[str, bool]] = None,
            prefix: str = None,
    ) -> str:
        """
        Generate an unused configuration name.

        Args:
            vcl_list: Result of get_vcl_list(), fetched when not provided
            prefix: Prefix of the name (default from settings, "load")

        Returns:
            The prefix followed by one more than the highest numeric
            suffix in use, e.g. load4 next to load1 and load3

        Examples:
            >>> admin.generate_configuration_name({"load1": False, "load3": True})
            'load4'
        """
        prefix = prefix if prefix is not None else settings.CONFIGURATION_PREFIX
        if vcl_list is None:
            vcl_list = self.get_vcl_list()

        index = 1
        for name in vcl_list:
            if not name.startswith(prefix):
                continue

            suffix = name[len(prefix):]
            if not suffix.isdecimal():
                continue

            index = max(index, int(suffix) + 1)

        return f"{prefix}{index}"

    def load_vcl_from_file(self, path: str, name: Optional[str] = None) -> str:
        """
        Compile and load a configuration file.

        Args:
            path: Path of the file on the Varnish server
            name: Name for the configuration, generated when omitted

        Returns:
            The name of the configuration
        """
        if not name:
            name = self.generate_configuration_name()

        self.execute(f"vcl.load {name} {path}")
        return name

    def load_vcl_from_configuration(self, configuration: str, name: Optional[str] = None) -> str:
        """
        Compile and load a configuration from its source.

        Args:
            configuration: VCL source
            name: Name for the configuration, generated when omitted

        Returns:
            The name of the configuration
        """
        if not name:
            name = self.generate_configuration_name()

        escaped = (
            configuration.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
        )
        self.execute(f'vcl.inline {name} "{escaped}"')
        return name

    def use_vcl(self, name: str) -> None:
        """Switch to the named configuration."""
        self.execute(f"vcl.use {name}")

    def load_and_use_vcl_from_file(self, path: str, name: Optional[str] = None) -> str:
        """Load a configuration file and switch to it, returning its name."""
        name = self.load_vcl_from_file(path, name)
        self.use_vcl(name)
        return name

    def discard_vcl(self, name: str) -> None:
        self.execute(f"vcl.discard {name}")

    def set_parameter(self, name: str, value) -> None:
        """Set a runtime parameter."""
        self.execute(f"param.set {name} {value}")

    # Panics

    def get_panic(self) -> Optional[str]:
        """
        Get the last panic.

        Returns:
            The panic message, or None when no panic was recorded
        """
        command = "panic.show"
        frame = self.execute(command, required_status=None)
        if frame.status == StatusCode.CANT:
            return None
        if frame.status != StatusCode.OK:
            raise CommandError(
                f"Could not execute command on {self}: "
                f"command `{command}` returned code {frame.status}",
                command=command,
                status=frame.status,
                response=frame.describe(),
            )

        return frame.text

    def clear_panic(self) -> None:
        self.execute("panic.clear")

    # Bans

    def ban(self, expression: str) -> None:
        """Ban the cached objects matching the expression."""
        self.execute(f"ban {expression}")

    def ban_url(self, url: str, recursive: bool = False) -> None:
        """
        Ban a URL.

        Args:
            url: Absolute URL to ban
            recursive: Also ban everything underneath the URL

        Raises:
            ValidationError: the URL has no host
        """
        self.ban(url_ban_expression(url, recursive))

    def ban_urls(self, urls: Iterable[str], recursive: bool = False) -> None:
        """Ban multiple URLs; the first failure stops the rest."""
        for url in urls:
            self.ban_url(url, recursive)
