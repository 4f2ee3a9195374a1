"""
Cluster module for varnish-admin.

This module provides the pool that applies the server operations to a
set of independently connected servers.
"""

from .pool import VarnishPool

__all__ = ["VarnishPool"]
