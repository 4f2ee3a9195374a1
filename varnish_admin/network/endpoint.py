"""
Endpoint Identity

Host, port and optional secret of one management port.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..config.settings import settings


@dataclass(frozen=True)
class Endpoint:
    """
    Address of a management port.

    Attributes:
        host: Hostname or IP address of the server
        port: Port of the management interface, usually 6082
        secret: Shared secret for the authentication handshake
    """
    host: str = settings.HOST
    port: int = settings.PORT
    secret: Optional[str] = field(default=None, repr=False)

    @property
    def identity(self) -> str:
        """Unique key of the endpoint: host:port."""
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.identity
