"""
Server Interface

The capabilities shared by a single server and a pool of servers, so
callers can use either one.
"""

from abc import ABC, abstractmethod
from typing import Iterable


class VarnishServer(ABC):
    """Interface of a Varnish setup: one server or a pool of them."""

    @abstractmethod
    def is_running(self) -> bool:
        """Check if the cache process is running."""

    @abstractmethod
    def start(self) -> bool:
        """
        Start the cache process.

        Returns:
            True if the process was started, False if it was already running
        """

    @abstractmethod
    def stop(self) -> bool:
        """
        Stop the cache process.

        Returns:
            True if the process was stopped, False if it was not running
        """

    @abstractmethod
    def ban(self, expression: str) -> None:
        """Ban the cached objects matching the expression."""

    @abstractmethod
    def ban_url(self, url: str, recursive: bool = False) -> None:
        """Ban a URL, or everything underneath it when recursive."""

    @abstractmethod
    def ban_urls(self, urls: Iterable[str], recursive: bool = False) -> None:
        """Ban multiple URLs."""
