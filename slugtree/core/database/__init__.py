"""Core database package: declarative base, inspection helpers and sluggable models.

Base Classes and Mixins:
    - Base: Declarative base with auto table naming
    - IntegerPKMixin: Integer primary key
    - SluggableMixin: Generated slug declaration

Instance Inspection:
    - is_new: Object not inserted yet
    - is_attribute_loaded: Attribute readable without a round trip
    - get_changed_attributes: Changed attributes with old/new values
    - get_root_mapper: Inheritance root of a class or instance

Exceptions:
    - SluggableError: Base exception for slug operations
    - InvalidMappingError: Sluggable declaration does not fit the mapping
"""

from slugtree.core.database.base import NAMING_CONVENTION, Base, IntegerPKMixin
from slugtree.core.database.exceptions import (
    InvalidMappingError,
    SluggableError,
    UnknownHandlerError,
)
from slugtree.core.database.inspection import (
    get_changed_attributes,
    get_root_mapper,
    is_attribute_loaded,
    is_new,
)
from slugtree.core.database.sluggable import (
    SluggableListener,
    SluggableMixin,
    TreeSlugHandler,
    regenerate_slugs,
)

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
    "InvalidMappingError",
    "SluggableError",
    "SluggableListener",
    "SluggableMixin",
    "TreeSlugHandler",
    "UnknownHandlerError",
    "get_changed_attributes",
    "get_root_mapper",
    "is_attribute_loaded",
    "is_new",
    "regenerate_slugs",
]
