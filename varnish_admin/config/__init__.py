"""Configuration module for varnish-admin."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
