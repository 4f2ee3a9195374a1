"""
Varnish Admin Configuration Settings

This module contains the configuration defaults for the admin client.
Constructor arguments always take precedence over these values.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("VARNISH_ADMIN_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("VARNISH_ADMIN_PORT", "6082"))
    SECRET: Optional[str] = os.environ.get("VARNISH_ADMIN_SECRET") or None

    # Connection settings
    TIMEOUT: float = float(os.environ.get("VARNISH_ADMIN_TIMEOUT", "5"))  # connect and read
    READ_BUFFER_SIZE: int = 1024

    # Protocol settings
    CHALLENGE_LENGTH: int = 32
    CONFIGURATION_PREFIX: str = "load"

    # Logging settings
    LOG_SOURCE: str = "varnish"


# Global settings instance
settings = Settings()
