"""Per-model sluggable configuration.

Built once per model from the ``SluggableMixin`` class attributes, merged
over ``SluggableSettings`` defaults and validated against the mapper.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, get_args

from sqlalchemy import String
from sqlalchemy import inspect as sa_inspect

from slugtree.core.database.exceptions import InvalidMappingError, UnknownHandlerError
from slugtree.core.database.sluggable.handlers.base import SlugHandler
from slugtree.core.settings.sluggable import SlugStyle

if TYPE_CHECKING:
    from slugtree.core.settings.sluggable import SluggableSettings

SLUG_OPTION_KEYS = frozenset({"separator", "style", "updatable", "unique", "date_format", "length"})


@dataclass(frozen=True)
class SluggableConfig:
    """Resolved sluggable configuration of one model.

    Attributes:
        model: The registered model class
        fields: Source attributes, joined with spaces
        slug_field: Attribute receiving the slug
        separator: Word separator inside a slug
        style: Casing applied to the transliterated text
        updatable: Rebuild when a source field changes
        unique: Make the slug unique per model hierarchy
        date_format: strftime format for date source values
        length: Maximum slug length, None for unbounded
        nullable: Whether an empty slug is stored as NULL
        handlers: Handler class -> raw handler options
    """

    model: type
    fields: tuple[str, ...]
    slug_field: str = "slug"
    separator: str = "-"
    style: SlugStyle = "default"
    updatable: bool = True
    unique: bool = True
    date_format: str = "%Y-%m-%d"
    length: int | None = None
    nullable: bool = True
    handlers: Mapping[type[SlugHandler], Mapping[str, Any]] = field(default_factory=dict)


def build_config(model: type, settings: SluggableSettings) -> SluggableConfig:
    """Read and validate the sluggable declaration of ``model``.

    Args:
        model: Mapped class using ``SluggableMixin`` attributes
        settings: Defaults for options the model leaves out

    Returns:
        Frozen configuration.

    Raises:
        InvalidMappingError: If a declared field or option does not fit the mapping.
        UnknownHandlerError: If a declared handler is not a SlugHandler subclass.
    """
    mapper = sa_inspect(model)
    name = model.__name__
    column_attrs = mapper.column_attrs

    fields = tuple(getattr(model, "__slug_fields__", ()) or ())
    if not fields:
        raise InvalidMappingError(name, "At least one slug source field is required")
    for source in fields:
        if source not in column_attrs:
            raise InvalidMappingError(name, "Unable to find slug source field", field=source)

    slug_field = getattr(model, "__slug_field__", "slug")
    if slug_field not in column_attrs:
        raise InvalidMappingError(name, "Unable to find slug field", field=slug_field)
    column = column_attrs[slug_field].columns[0]
    if not isinstance(column.type, String):
        raise InvalidMappingError(name, "Slug field must be a string column", field=slug_field)

    options = dict(getattr(model, "__slug_options__", {}) or {})
    unknown = sorted(options.keys() - SLUG_OPTION_KEYS)
    if unknown:
        raise InvalidMappingError(name, f"Unknown slug options: {', '.join(unknown)}")

    style = options.get("style", settings.style)
    if style not in get_args(SlugStyle):
        raise InvalidMappingError(name, f"Unknown slug style {style!r}")

    separator = options.get("separator", settings.word_separator)
    if not separator:
        raise InvalidMappingError(name, "Slug separator must not be empty")

    handlers: dict[type[SlugHandler], Mapping[str, Any]] = {}
    for handler_cls, handler_options in (getattr(model, "__slug_handlers__", {}) or {}).items():
        if not (isinstance(handler_cls, type) and issubclass(handler_cls, SlugHandler)):
            raise UnknownHandlerError(name, handler_cls)
        handler_cls.validate(handler_options, mapper)
        handlers[handler_cls] = dict(handler_options)

    return SluggableConfig(
        model=model,
        fields=fields,
        slug_field=slug_field,
        separator=separator,
        style=style,
        updatable=options.get("updatable", settings.updatable),
        unique=options.get("unique", settings.unique),
        date_format=options.get("date_format", settings.date_format),
        length=options.get("length", column.type.length),
        nullable=bool(column.nullable),
        handlers=handlers,
    )


__all__ = [
    "SLUG_OPTION_KEYS",
    "SluggableConfig",
    "build_config",
]
