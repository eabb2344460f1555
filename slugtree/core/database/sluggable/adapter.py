"""Unit-of-work view used by the sluggable listener and its handlers.

``SluggableAdapter`` is the narrow interface handlers depend on;
``SQLAlchemyAdapter`` implements it over a sync ``Session`` (an
``AsyncSession`` exposes one as ``sync_session``).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import logging
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import String, func, literal, select, update
from sqlalchemy.orm.attributes import set_committed_value

from slugtree.core.database.inspection import (
    get_changed_attributes,
    get_root_mapper,
    is_attribute_loaded,
    is_new,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper, Session

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"
GENERATED_KEY = "slugtree.generated"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so ``value`` matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class SluggableAdapter(Protocol):
    """Persistence capabilities consumed by slug handlers."""

    def is_scheduled_for_insert(self, obj: Any) -> bool: ...

    def get_change_set(self, obj: Any) -> dict[str, tuple[Any, Any]]: ...

    def get_property(self, obj: Any, field: str) -> Any: ...

    def set_property(self, obj: Any, field: str, value: Any) -> None: ...

    def relation_keys(self, obj: Any, field: str) -> set[str]: ...

    def get_related(self, obj: Any, field: str) -> Any: ...

    def loaded_objects(self, obj: Any) -> Iterable[Any]: ...

    def is_initialized(self, obj: Any, field: str) -> bool: ...

    def set_original_value(self, obj: Any, field: str, value: Any) -> None: ...

    def replace_relative(
        self, obj: Any, field: str, target: str, separator: str, slug: str
    ) -> int: ...


class SQLAlchemyAdapter:
    """SQLAlchemy implementation of the sluggable unit-of-work view.

    Maps the capabilities onto SQLAlchemy:
    - inserts: pending instances
    - change set: attribute history (columns and relationships)
    - loaded objects: the session identity map, filtered by root mapper
    - original values: committed state via ``set_committed_value``

    Example:
        >>> adapter = SQLAlchemyAdapter(session)
        >>> adapter.is_scheduled_for_insert(Category(title="Food"))
        True
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def is_scheduled_for_insert(self, obj: Any) -> bool:
        return is_new(obj)

    def get_change_set(self, obj: Any) -> dict[str, tuple[Any, Any]]:
        return get_changed_attributes(obj, include_relationships=True)

    def get_property(self, obj: Any, field: str) -> Any:
        return getattr(obj, field)

    def set_property(self, obj: Any, field: str, value: Any) -> None:
        setattr(obj, field, value)

    def relation_keys(self, obj: Any, field: str) -> set[str]:
        """Attribute keys whose change means ``field`` points elsewhere.

        The relationship itself plus the attributes mapped to its local
        foreign key columns, so assigning ``parent_id`` directly is seen too.
        """
        mapper: Mapper[Any] = sa_inspect(obj).mapper
        keys = {field}
        relationship = mapper.relationships.get(field)
        if relationship is None:
            return keys
        for column in relationship.local_columns:
            prop = mapper.get_property_by_column(column)
            keys.add(prop.key)
        return keys

    def get_related(self, obj: Any, field: str) -> Any:
        """Return the object ``field`` points to once pending changes are flushed.

        A foreign key assigned directly (``parent_id = 3``) leaves the
        relationship attribute on the previously loaded object, so in that
        case the target is looked up from the new key values instead.
        """
        state = sa_inspect(obj)
        relationship = state.mapper.relationships.get(field)
        if relationship is None or state.attrs[field].history.has_changes():
            return getattr(obj, field)

        changes = self.get_change_set(obj)
        pairs = [
            (state.mapper.get_property_by_column(local).key, remote)
            for local, remote in relationship.local_remote_pairs
        ]
        if not any(key in changes for key, _ in pairs):
            return getattr(obj, field)

        values = {remote: getattr(obj, key) for key, remote in pairs}
        if any(value is None for value in values.values()):
            return None

        target = relationship.mapper
        with self.session.no_autoflush:
            if set(values) == set(target.primary_key):
                ident = tuple(values[column] for column in target.primary_key)
                return self.session.get(target.class_, ident)
            stmt = select(target.class_).where(
                *(column == value for column, value in values.items())
            )
            return self.session.scalars(stmt).first()

    def loaded_objects(self, obj: Any) -> Iterator[Any]:
        """Yield identity-map objects sharing the root mapper of ``obj``.

        Only the inheritance root identifies a hierarchy, so subclasses of a
        polymorphic tree are all visited.
        """
        root = get_root_mapper(obj)
        for candidate in list(self.session.identity_map.values()):
            if sa_inspect(candidate).mapper.base_mapper is root:
                yield candidate

    def pending_objects(self, obj: Any) -> Iterator[Any]:
        """Yield pending (new) objects sharing the root mapper of ``obj``."""
        root = get_root_mapper(obj)
        for candidate in list(self.session.new):
            if sa_inspect(candidate).mapper.base_mapper is root:
                yield candidate

    def is_initialized(self, obj: Any, field: str) -> bool:
        return is_attribute_loaded(obj, field)

    def set_original_value(self, obj: Any, field: str, value: Any) -> None:
        """Set ``field`` as if it had been loaded with ``value``.

        Both the live value and the committed snapshot change, so the flush
        does not emit an UPDATE for it.
        """
        set_committed_value(obj, field, value)

    def mark_generated(self, obj: Any, field: str, value: Any) -> None:
        """Remember ``value`` as generated, so it is not taken for a manual slug."""
        sa_inspect(obj).info[(GENERATED_KEY, field)] = value

    def is_generated(self, obj: Any, field: str, value: Any) -> bool:
        info = sa_inspect(obj).info
        key = (GENERATED_KEY, field)
        return key in info and info[key] == value

    def stored_slugs(self, obj: Any, field: str, base: str, separator: str) -> set[str]:
        """Slugs in storage equal to ``base`` or starting with ``base + separator``.

        Rows belonging to ``obj`` itself are excluded. Runs with autoflush
        disabled since it is called while the session is flushing.
        """
        root = get_root_mapper(obj)
        model = root.class_
        column = getattr(model, field)
        pk_columns = [
            getattr(model, root.get_property_by_column(col).key) for col in root.primary_key
        ]
        stmt = select(column, *pk_columns).where(
            column.is_not(None),
            (column == base)
            | column.like(f"{escape_like(base + separator)}%", escape=LIKE_ESCAPE),
        )
        own_identity = sa_inspect(obj).identity
        with self.session.no_autoflush:
            rows = self.session.execute(stmt).all()
        return {row[0] for row in rows if own_identity is None or tuple(row[1:]) != own_identity}

    def replace_relative(
        self, obj: Any, field: str, target: str, separator: str, slug: str
    ) -> int:
        """Rewrite the ``target + separator`` prefix to ``slug + separator`` in storage.

        Returns:
            Number of rows updated.
        """
        model = get_root_mapper(obj).class_
        column = getattr(model, field)
        prefix = target + separator
        stmt = (
            update(model)
            .where(column.like(f"{escape_like(prefix)}%", escape=LIKE_ESCAPE))
            .values({field: literal(slug) + func.substr(column, len(target) + 1, type_=String())})
            .execution_options(synchronize_session=False)
        )
        with self.session.no_autoflush:
            result = self.session.execute(stmt)
        logger.debug(
            "Replaced slug prefix in storage",
            extra={"model": model.__name__, "target": target, "slug": slug, "rows": result.rowcount},
        )
        return result.rowcount


__all__ = [
    "LIKE_ESCAPE",
    "SQLAlchemyAdapter",
    "SluggableAdapter",
    "escape_like",
]
