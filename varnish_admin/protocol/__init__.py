"""Protocol module for varnish-admin."""

from .codec import FrameCodec
from .frame import Frame, StatusCode

__all__ = [
    "Frame",
    "FrameCodec",
    "StatusCode",
]
