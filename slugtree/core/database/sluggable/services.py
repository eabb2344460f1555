"""Bulk slug maintenance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm.attributes import flag_modified

from slugtree.core.database.exceptions import InvalidMappingError
from slugtree.core.database.sluggable.adapter import SQLAlchemyAdapter
from slugtree.infra.logging import log_context

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from slugtree.core.database.sluggable.listener import SluggableListener

logger = logging.getLogger(__name__)


def regenerate_slugs(session: Session, listener: SluggableListener, model: type[Any]) -> int:
    """Rebuild the slug of every stored ``model`` row, parents first.

    Loads all rows so every descendant is in the identity map, which makes
    the in-memory propagation complete. Every object whose slug ends up
    different from its stored value is flagged modified, including
    descendants rewritten by propagation, and is written by the next flush
    or commit.

    Args:
        session: Sync session (use ``AsyncSession.run_sync`` from async code)
        listener: Listener holding the model registration
        model: Registered sluggable model

    Returns:
        Number of objects whose slug changed.

    Raises:
        InvalidMappingError: If ``model`` is not registered with ``listener``.

    Example:
        >>> changed = regenerate_slugs(session, listener, Category)
        >>> session.commit()

        >>> # async
        >>> changed = await session.run_sync(regenerate_slugs, listener, Category)
    """
    config = listener.get_configuration(model)
    if config is None:
        raise InvalidMappingError(model.__name__, "Model is not registered as sluggable")

    field = config.slug_field
    adapter = SQLAlchemyAdapter(session)
    with log_context(model=model.__name__):
        with session.no_autoflush:
            objects = list(session.scalars(select(model)))
            stored = {id(obj): adapter.get_property(obj, field) for obj in objects}
            listener.process(adapter, objects, force=True)

        changed = 0
        for obj in objects:
            value = adapter.get_property(obj, field)
            if value != stored[id(obj)]:
                flag_modified(obj, field)
                adapter.mark_generated(obj, field, value)
                changed += 1

        logger.info("Regenerated slugs", extra={"total": len(objects), "changed": changed})
    return changed


__all__ = [
    "regenerate_slugs",
]
