"""Read-only views over SQLAlchemy instance state.

The sluggable adapter answers every unit-of-work question through these
helpers: is the object new, what changed since it was loaded, is an attribute
present in memory, which mapper roots its hierarchy. None of them emits SQL.

Example:
    >>> fruits = session.get(Category, 2)
    >>> fruits.parent = market
    >>> get_changed_attributes(fruits, include_relationships=True)
    {'parent': (<Category food>, <Category market>)}
    >>> is_attribute_loaded(fruits, "slug")
    True
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect as sa_inspect

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState, Mapper


def is_new(instance: Any) -> bool:
    """True for transient and pending instances, i.e. rows not inserted yet."""
    state: InstanceState[Any] = sa_inspect(instance)
    return state.transient or state.pending


def is_attribute_loaded(instance: Any, attr: str) -> bool:
    """Whether ``attr`` can be read without a round trip.

    Expired, deferred and never-loaded attributes are reported as not loaded.
    """
    state: InstanceState[Any] = sa_inspect(instance)
    return attr not in state.unloaded


def get_changed_attributes(
    instance: Any,
    *,
    include_relationships: bool = False,
) -> dict[str, tuple[Any, Any]]:
    """Attributes modified since load, as ``name -> (old, new)``.

    Args:
        instance: Mapped instance
        include_relationships: Report relationship attributes as well. A
            collection reports ``(removed members, added members)``.

    Returns:
        Only the attributes whose history carries a change; ``old`` is None
        when the previous value was never loaded.
    """
    state: InstanceState[Any] = sa_inspect(instance)
    mapper = state.mapper
    relationships = mapper.relationships

    names = [prop.key for prop in mapper.column_attrs]
    if include_relationships:
        names += [prop.key for prop in relationships]

    changed: dict[str, tuple[Any, Any]] = {}
    for name in names:
        # Read with PASSIVE_NO_INITIALIZE; unloaded attributes have no history
        history = state.attrs[name].history
        if not history.has_changes():
            continue
        if name in relationships and relationships[name].uselist:
            changed[name] = (list(history.deleted), list(history.added))
        else:
            changed[name] = (
                history.deleted[0] if history.deleted else None,
                history.added[0] if history.added else None,
            )
    return changed


def get_root_mapper(instance_or_class: Any) -> Mapper[Any]:
    """Mapper at the top of the inheritance hierarchy of a class or instance."""
    if isinstance(instance_or_class, type):
        return sa_inspect(instance_or_class).base_mapper
    return sa_inspect(instance_or_class).mapper.base_mapper


__all__ = [
    "get_changed_attributes",
    "get_root_mapper",
    "is_attribute_loaded",
    "is_new",
]
