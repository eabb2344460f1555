"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from slugtree.core.settings.loader import get_sluggable_settings

    settings = get_sluggable_settings()  # First call: loads and validates
    settings = get_sluggable_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    clear_all_caches()

    Or override with custom values:
    settings = SluggableSettings(word_separator="_")
"""

from __future__ import annotations

from functools import lru_cache

from .logs import LoggingSettings
from .sluggable import SluggableSettings


@lru_cache(maxsize=1)
def get_sluggable_settings() -> SluggableSettings:
    """Get cached slug generation settings.

    Returns:
        Validated and frozen SluggableSettings instance.
    """
    return SluggableSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful for testing or when you need to force reload settings.
    """
    get_sluggable_settings.cache_clear()
    get_logging_settings.cache_clear()
