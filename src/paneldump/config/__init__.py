"""
paneldump configuration.

Pydantic-based settings read from PANELDUMP_* environment variables and .env files.
"""

from paneldump.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
