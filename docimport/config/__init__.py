"""
Importer configuration.
"""

from .settings import DatabaseSettings, Settings, load_settings

__all__ = ["DatabaseSettings", "Settings", "load_settings"]
