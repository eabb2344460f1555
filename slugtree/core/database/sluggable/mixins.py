"""Mixin declaring sluggable model configuration."""

from __future__ import annotations

from typing import Any, ClassVar


class SluggableMixin:
    """Mixin for models with a generated slug column.

    The listener reads the class attributes below when the model is
    registered. Only ``__slug_fields__`` is required.

    Example:
        >>> class Article(Base, IntegerPKMixin, SluggableMixin):
        ...     __tablename__ = "articles"
        ...     __slug_fields__ = ("title", "published_on")
        ...     __slug_options__ = {"style": "camel", "unique": False}
        ...     title: Mapped[str] = mapped_column(String(255))
        ...     published_on: Mapped[date] = mapped_column(Date)
        ...     slug: Mapped[str | None] = mapped_column(String(128))
        >>>
        >>> listener.register(Article)

    Options (``__slug_options__``), defaults from ``SluggableSettings``:
        - separator: Word separator inside a slug
        - style: default|lower|upper|camel
        - updatable: Rebuild when a source field changes
        - unique: Append ``-1``, ``-2``... on collisions
        - date_format: strftime format for date source fields
        - length: Maximum slug length (defaults to the column length)
    """

    __allow_unmapped__ = True

    # Source attributes joined with spaces before transliteration
    __slug_fields__: ClassVar[tuple[str, ...]] = ()
    __slug_field__: ClassVar[str] = "slug"
    __slug_options__: ClassVar[dict[str, Any]] = {}
    # Handler class -> handler options
    __slug_handlers__: ClassVar[dict[type, dict[str, Any]]] = {}
