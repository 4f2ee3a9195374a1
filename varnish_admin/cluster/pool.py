"""
Varnish Pool Module

Applies the server operations to every server of a pool.

Broadcasts run sequentially in registration order. By default the first
failing server aborts the broadcast and its error propagates, leaving the
remaining servers untouched. With ignore_on_fail set, failures are logged
and the broadcast continues.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

from ..admin.server import VarnishServer
from ..exceptions import DuplicateError, VarnishError

logger = logging.getLogger(__name__)


class VarnishPool(VarnishServer):
    """
    A Varnish setup with a pool of servers.

    Usage:
        pool = VarnishPool(ignore_on_fail=True)
        pool.add_server(VarnishAdmin("10.0.0.1", 6082, secret="s3cr3t"))
        pool.add_server(VarnishAdmin("10.0.0.2", 6082, secret="s3cr3t"))
        pool.ban_url("http://example.com/", recursive=True)
    """

    def __init__(self, servers: Iterable[VarnishServer] = None, ignore_on_fail: bool = False):
        """
        Initialize the pool.

        Args:
            servers: Servers to add, see add_server()
            ignore_on_fail: Continue on the remaining servers when one fails
        """
        self._servers: Dict[str, VarnishServer] = {}
        self.ignore_on_fail = ignore_on_fail

        for server in servers or []:
            self.add_server(server)

    def __str__(self) -> str:
        return "[" + ",".join(self._servers) + "]"

    def __repr__(self) -> str:
        return f"VarnishPool(servers={list(self._servers)}, ignore_on_fail={self.ignore_on_fail})"

    def __len__(self) -> int:
        return len(self._servers)

    def __contains__(self, identity: str) -> bool:
        return identity in self._servers

    def add_server(self, server: VarnishServer) -> None:
        """
        Add a server to the pool, keyed by its string form (host:port).

        Raises:
            DuplicateError: a server with the same identity is in the pool
        """
        identity = str(server)
        if identity in self._servers:
            raise DuplicateError(f"Could not add server {identity}: already exists")

        self._servers[identity] = server

    def remove_server(self, identity: str) -> bool:
        """
        Remove a server from the pool.

        Returns:
            True if the server was removed, False if it was not in the pool
        """
        if identity not in self._servers:
            return False

        del self._servers[identity]
        return True

    def get_server(self, identity: str) -> Optional[VarnishServer]:
        """Get a server by its identity, None if it is not in the pool."""
        return self._servers.get(identity)

    def get_servers(self) -> Dict[str, VarnishServer]:
        """Get a copy of the identity to server mapping."""
        return dict(self._servers)

    def _broadcast(self, operation: str, call: Callable[[VarnishServer], Optional[bool]]) -> bool:
        """
        Run a call on every server.

        Args:
            operation: Name of the operation, for logging
            call: Callable invoked with each server

        Returns:
            True if at least one call returned True
        """
        status = False

        for identity, server in self._servers.items():
            try:
                if call(server):
                    status = True
            except VarnishError as exc:
                if not self.ignore_on_fail:
                    raise
                logger.warning(f"{operation} failed on {identity}, continuing: {exc}")

        return status

    def is_running(self) -> bool:
        """Check if the cache process runs on all servers; False for an empty pool."""
        if not self._servers:
            return False

        return all(server.is_running() for server in self._servers.values())

    def start(self) -> bool:
        """Start all servers; True if at least one was started."""
        return self._broadcast("start", lambda server: server.start())

    def stop(self) -> bool:
        """Stop all servers; True if at least one was stopped."""
        return self._broadcast("stop", lambda server: server.stop())

    def ban(self, expression: str) -> None:
        self._broadcast("ban", lambda server: server.ban(expression))

    def ban_url(self, url: str, recursive: bool = False) -> None:
        self._broadcast("ban_url", lambda server: server.ban_url(url, recursive))

    def ban_urls(self, urls: Iterable[str], recursive: bool = False) -> None:
        urls = list(urls)
        self._broadcast("ban_urls", lambda server: server.ban_urls(urls, recursive))
