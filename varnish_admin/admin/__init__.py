"""Administration module for varnish-admin."""

from .ban import escape_for_regex, url_ban_expression
from .commands import VarnishAdmin
from .server import VarnishServer

__all__ = ["VarnishAdmin", "VarnishServer", "escape_for_regex", "url_ban_expression"]
