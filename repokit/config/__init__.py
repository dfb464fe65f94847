"""
Configuration package.

Exports the singleton settings instance for easy importing.

Usage:
    from repokit.config import settings

    print(settings.default_per_page)  # 15
"""

from repokit.config.settings import Settings, settings, get_settings

__all__ = [
    "Settings",
    "settings",
    "get_settings",
]
