"""Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from slugtree.core.settings import get_sluggable_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (SLUG_*, LOG_*)
    3. .env file (development only)
"""

from __future__ import annotations

from .loader import clear_all_caches, get_logging_settings, get_sluggable_settings
from .logs import LoggingSettings
from .sluggable import SluggableSettings, SlugStyle

__all__ = [
    "LoggingSettings",
    "SlugStyle",
    "SluggableSettings",
    "clear_all_caches",
    "get_logging_settings",
    "get_sluggable_settings",
]
