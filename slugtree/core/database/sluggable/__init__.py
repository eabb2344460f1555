"""Generated, hierarchical slugs for SQLAlchemy models.

This package builds URL-safe slugs from model fields before each flush and,
through the tree handler, keeps slugs of tree nodes prefixed with their
ancestors' slugs ("food/fruits/apples").

Components:
    - SluggableListener: Registers models and hooks session before_flush
    - SluggableMixin: Declares source fields, options and handlers
    - TreeSlugHandler: Parent prefix and in-memory rename propagation
    - SQLAlchemyAdapter: Unit-of-work view used by handlers
    - regenerate_slugs: Rebuild every slug of a model

Example:
    >>> class Category(Base, IntegerPKMixin, SluggableMixin):
    ...     __tablename__ = "categories"
    ...     __slug_fields__ = ("title",)
    ...     __slug_handlers__ = {TreeSlugHandler: {"parent_relation_field": "parent"}}
    ...     title: Mapped[str] = mapped_column(String(255))
    ...     slug: Mapped[str | None] = mapped_column(String(255))
    ...     parent_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"))
    ...     parent: Mapped[Category | None] = relationship(remote_side="Category.id")
    >>>
    >>> listener = SluggableListener()
    >>> listener.register_all(Base)
    >>> listener.configure(Session)
    >>>
    >>> food = Category(title="Food")
    >>> fruits = Category(title="Fruits", parent=food)
    >>> session.add_all([food, fruits])
    >>> session.flush()
    >>> fruits.slug
    'food/fruits'
"""

from slugtree.core.database.sluggable.adapter import SluggableAdapter, SQLAlchemyAdapter
from slugtree.core.database.sluggable.config import SluggableConfig, build_config
from slugtree.core.database.sluggable.context import SlugBuildContext
from slugtree.core.database.sluggable.handlers import SlugHandler, TreeSlugHandler
from slugtree.core.database.sluggable.listener import SluggableListener
from slugtree.core.database.sluggable.mixins import SluggableMixin
from slugtree.core.database.sluggable.options import OptionCache, TreeSlugOptions
from slugtree.core.database.sluggable.services import regenerate_slugs
from slugtree.core.database.sluggable.transliteration import (
    Transliterator,
    apply_style,
    default_transliterator,
)

__all__ = [
    "OptionCache",
    "SQLAlchemyAdapter",
    "SlugBuildContext",
    "SlugHandler",
    "SluggableAdapter",
    "SluggableConfig",
    "SluggableListener",
    "SluggableMixin",
    "Transliterator",
    "TreeSlugHandler",
    "TreeSlugOptions",
    "apply_style",
    "build_config",
    "default_transliterator",
    "regenerate_slugs",
]
