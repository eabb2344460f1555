"""slugtree: generated and hierarchical slugs for SQLAlchemy models."""

from slugtree.core.database import (
    InvalidMappingError,
    SluggableError,
    SluggableListener,
    SluggableMixin,
    TreeSlugHandler,
    regenerate_slugs,
)

__version__ = "0.1.0"

__all__ = [
    "InvalidMappingError",
    "SluggableError",
    "SluggableListener",
    "SluggableMixin",
    "TreeSlugHandler",
    "__version__",
    "regenerate_slugs",
]
