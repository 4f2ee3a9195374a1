"""Network module for varnish-admin."""

from .endpoint import Endpoint
from .session import Session, SessionState, challenge_response

__all__ = ["Endpoint", "Session", "SessionState", "challenge_response"]
