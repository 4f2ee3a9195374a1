"""
varnish-admin: Varnish Management Port Client

A client for the administrative text protocol of the Varnish cache
daemon, for single servers and pools of servers.
"""

from .admin import VarnishAdmin, VarnishServer
from .cluster import VarnishPool
from .exceptions import (
    AdminConnectionError,
    AuthError,
    CommandError,
    DuplicateError,
    ProtocolError,
    ValidationError,
    VarnishError,
)
from .network import Endpoint, Session, SessionState
from .protocol import Frame, FrameCodec, StatusCode

__version__ = "1.0.0"

__all__ = [
    "AdminConnectionError",
    "AuthError",
    "CommandError",
    "DuplicateError",
    "Endpoint",
    "Frame",
    "FrameCodec",
    "ProtocolError",
    "Session",
    "SessionState",
    "StatusCode",
    "ValidationError",
    "VarnishAdmin",
    "VarnishError",
    "VarnishPool",
    "VarnishServer",
]
