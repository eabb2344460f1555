"""Slug generation settings.

Provides the process-wide defaults applied to every sluggable model unless
the model declares its own value in ``__slug_options__`` or in the options of
one of its slug handlers.

Features controlled:
- Word separator and slug style
- Uniqueness and updatability defaults
- Tree handler separator and optional storage sync
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SlugStyle = Literal["default", "lower", "upper", "camel"]


class SluggableSettings(BaseSettings):
    """Sluggable configuration settings.

    Environment variables use SLUG_ prefix.
    Example: SLUG_WORD_SEPARATOR=_, SLUG_TREE_SEPARATOR=/
    """

    # Slug text
    word_separator: str = Field(
        default="-",
        min_length=1,
        max_length=5,
        description="Separator placed between words of a transliterated slug",
    )
    style: SlugStyle = Field(
        default="default",
        description="Slug casing (default|lower|upper|camel)",
    )
    date_format: str = Field(
        default="%Y-%m-%d",
        description="strftime format used for date/datetime source fields",
    )

    # Lifecycle
    unique: bool = Field(default=True, description="Make slugs unique per model")
    updatable: bool = Field(
        default=True, description="Regenerate slugs when source fields change"
    )
    max_unique_attempts: int = Field(
        default=1000,
        ge=1,
        description="Maximum numeric suffix tried when making a slug unique",
    )

    # Tree handler
    tree_separator: str = Field(
        default="/",
        min_length=1,
        max_length=5,
        description="Separator between a parent slug and a child segment",
    )
    tree_sync_storage: bool = Field(
        default=False,
        description="Rewrite descendant slugs in storage with a bulk UPDATE",
    )

    model_config = SettingsConfigDict(
        env_prefix="SLUG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
