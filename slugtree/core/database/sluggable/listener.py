"""Slug generation driven by SQLAlchemy session events.

The listener owns the sluggable configuration of every registered model and
builds slugs for new and modified objects right before each flush.

Usage:
    from sqlalchemy.orm import Session
    from slugtree.core.database.sluggable import SluggableListener

    listener = SluggableListener()
    listener.register_all(Base)    # Validate every SluggableMixin model
    listener.configure(Session)    # Hook before_flush for all sessions

    # In tests, detach again:
    listener.remove_listeners()

Slug pipeline for one object:
    1. Decide whether a rebuild is needed (insert, manual slug, source change)
    2. Handlers: on_change_decision
    3. Handlers: post_slug_build (may wrap the build's transliterator)
    4. Transliterate, truncate, make unique
    5. Handlers: on_slug_completion
    6. Assign the slug
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from datetime import date, datetime
from itertools import chain
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from slugtree.core.database.exceptions import SluggableError
from slugtree.core.database.sluggable.adapter import SQLAlchemyAdapter
from slugtree.core.database.sluggable.config import SluggableConfig, build_config
from slugtree.core.database.sluggable.context import SlugBuildContext
from slugtree.core.database.sluggable.transliteration import (
    Transliterator,
    default_transliterator,
    styled,
)
from slugtree.core.settings import get_sluggable_settings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.orm import UOWTransaction

    from slugtree.core.database.sluggable.handlers.base import SlugHandler
    from slugtree.core.settings.sluggable import SluggableSettings

logger = logging.getLogger(__name__)


def truncate(slug: str, length: int, separator: str, prefix: str = "") -> str:
    """Cut ``slug`` to ``length`` characters without cutting into ``prefix``.

    Trailing word separators are dropped. Returns an empty string when
    ``prefix`` leaves no room for anything else.
    """
    if len(slug) <= length:
        return slug
    if not slug.startswith(prefix):
        prefix = ""
    rest = slug[len(prefix) : length].rstrip(separator)
    return f"{prefix}{rest}" if rest else ""


@dataclass
class SluggableListener:
    """Builds slugs of registered models before every flush.

    Attributes:
        settings: Defaults for options models leave out.
        transliterator: Text-to-slug strategy every build starts from.
    """

    settings: SluggableSettings = field(default_factory=get_sluggable_settings)
    transliterator: Transliterator = default_transliterator
    _configurations: dict[type, SluggableConfig] = field(default_factory=dict, repr=False)
    _handlers: dict[type, SlugHandler] = field(default_factory=dict, repr=False)
    _listeners: list[tuple[Any, str, Any]] = field(default_factory=list, repr=False)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def register(self, model: type) -> SluggableConfig:
        """Validate and store the sluggable declaration of ``model``.

        Raises:
            InvalidMappingError: If the declaration does not fit the mapping.
        """
        config = build_config(model, self.settings)
        if model in self._configurations:
            for handler in self._handlers.values():
                handler.clear_options()
        self._configurations[model] = config
        for handler_cls in config.handlers:
            self.get_handler(handler_cls)
        logger.debug(
            "Registered sluggable model",
            extra={
                "model": model.__name__,
                "fields": list(config.fields),
                "handlers": [h.__name__ for h in config.handlers],
            },
        )
        return config

    def register_all(self, base_class: type) -> list[SluggableConfig]:
        """Register every mapped class of ``base_class`` declaring slug fields.

        Call this once after defining all models.
        """
        registry = getattr(base_class, "registry", None)
        if registry is None:
            return []
        configs = []
        for mapper in registry.mappers:
            model = mapper.class_
            if getattr(model, "__slug_fields__", None) and model not in self._configurations:
                configs.append(self.register(model))
        return configs

    def get_configuration(self, cls: type) -> SluggableConfig | None:
        """Return the configuration of ``cls`` or of its nearest registered base."""
        for klass in cls.__mro__:
            config = self._configurations.get(klass)
            if config is not None:
                return config
        return None

    def get_handler(self, handler_cls: type[SlugHandler]) -> SlugHandler:
        """Return the listener-wide instance of ``handler_cls``."""
        handler = self._handlers.get(handler_cls)
        if handler is None:
            handler = handler_cls(self)
            self._handlers[handler_cls] = handler
        return handler

    def _handlers_for(self, config: SluggableConfig) -> list[SlugHandler]:
        return [self.get_handler(handler_cls) for handler_cls in config.handlers]

    # ------------------------------------------------------------------
    # Event wiring
    # ------------------------------------------------------------------

    def configure(self, target: Any = Session) -> None:
        """Attach the before_flush hook.

        Args:
            target: Session class, sessionmaker or session instance. An
                ``AsyncSession`` is unwrapped to its sync session.
        """
        if isinstance(target, AsyncSession):
            target = target.sync_session
        self._add_listener(target, "before_flush", self._before_flush)
        logger.debug("SluggableListener configured", extra={"target": repr(target)})

    def _add_listener(self, target: Any, event_name: str, callback: Any) -> None:
        event.listen(target, event_name, callback)
        self._listeners.append((target, event_name, callback))

    def remove_listeners(self) -> None:
        """Remove all registered event listeners."""
        for target, event_name, callback in self._listeners:
            with contextlib.suppress(Exception):
                event.remove(target, event_name, callback)  # Listener may already be removed
        self._listeners.clear()
        logger.debug("SluggableListener listeners removed")

    def _before_flush(
        self,
        session: Session,
        flush_context: UOWTransaction,  # noqa: ARG002
        instances: Any,  # noqa: ARG002
    ) -> None:
        candidates = [
            obj
            for obj in chain(session.new, session.dirty)
            if self.get_configuration(type(obj)) is not None
        ]
        if candidates:
            self.process(SQLAlchemyAdapter(session), candidates)

    # ------------------------------------------------------------------
    # Slug pipeline
    # ------------------------------------------------------------------

    def process(
        self,
        adapter: SQLAlchemyAdapter,
        objects: Iterable[Any],
        *,
        force: bool = False,
    ) -> int:
        """Build slugs of ``objects`` with parents before children.

        Returns:
            Number of objects whose slug changed.
        """
        changed = 0
        for obj in self.order(adapter, objects):
            if self.generate_slug(adapter, obj, force=force):
                changed += 1
        return changed

    def order(self, adapter: SQLAlchemyAdapter, objects: Iterable[Any]) -> list[Any]:
        """Sort objects so handler dependencies (tree parents) come first.

        Dependencies outside ``objects`` are walked through but not returned,
        so a child goes after a modified grandparent even when the parent in
        between is unchanged.
        """
        pending = {id(obj): obj for obj in objects}
        ordered: list[Any] = []
        visited: set[int] = set()

        def visit(obj: Any) -> None:
            visited.add(id(obj))
            for dependency in self._dependencies(adapter, obj):
                if id(dependency) not in visited:
                    visit(dependency)
            if id(obj) in pending:
                ordered.append(obj)

        for obj in pending.values():
            if id(obj) not in visited:
                visit(obj)
        return ordered

    def _dependencies(self, adapter: SQLAlchemyAdapter, obj: Any) -> list[Any]:
        config = self.get_configuration(type(obj))
        if config is None:
            return []
        return [
            dependency
            for handler in self._handlers_for(config)
            for dependency in handler.get_dependencies(adapter, obj)
        ]

    def generate_slug(self, adapter: SQLAlchemyAdapter, obj: Any, *, force: bool = False) -> bool:
        """Run the slug pipeline for one object.

        Args:
            adapter: Unit-of-work view of the session owning ``obj``
            obj: Object of a registered model
            force: Rebuild even if nothing relevant changed

        Returns:
            True if the slug attribute was changed.
        """
        config = self.get_configuration(type(obj))
        if config is None:
            return False

        handlers = self._handlers_for(config)
        is_insert = adapter.is_scheduled_for_insert(obj)
        changes = adapter.get_change_set(obj)
        current = adapter.get_property(obj, config.slug_field)
        context = SlugBuildContext(
            obj=obj,
            slug_field=config.slug_field,
            transliterator=styled(self.transliterator, config.style),
            is_insert=is_insert,
        )

        if (
            current
            and config.slug_field in changes
            and not adapter.is_generated(obj, config.slug_field, current)
        ):
            # Slug was set manually, slug it as given
            source = str(current)
            needs_change = True
        else:
            source = self._source_text(adapter, obj, config)
            needs_change = (
                is_insert
                or force
                or not current
                or (config.updatable and any(name in changes for name in config.fields))
            )

        for handler in handlers:
            needs_change = handler.on_change_decision(adapter, context, current, needs_change)
        if not needs_change:
            return False

        for handler in handlers:
            handler.post_slug_build(adapter, context, source)

        slug: str | None = context.transliterate(source, config.separator)
        if slug and config.length:
            slug = truncate(slug, config.length, config.separator, context.prefix)
        if not slug and config.nullable:
            slug = None
        if slug and config.unique:
            slug = self.make_unique(adapter, obj, config, slug, prefix=context.prefix)

        for handler in handlers:
            handler.on_slug_completion(adapter, context, slug)

        if slug == current:
            return False
        adapter.set_property(obj, config.slug_field, slug)
        adapter.mark_generated(obj, config.slug_field, slug)
        logger.debug(
            "Generated slug",
            extra={"model": type(obj).__name__, "slug": slug, "previous": current, "insert": is_insert},
        )
        return True

    def _source_text(self, adapter: SQLAlchemyAdapter, obj: Any, config: SluggableConfig) -> str:
        parts = []
        for name in config.fields:
            value = adapter.get_property(obj, name)
            if value is None:
                continue
            if isinstance(value, (date, datetime)):
                value = value.strftime(config.date_format)
            parts.append(str(value))
        return " ".join(parts).strip()

    def make_unique(
        self,
        adapter: SQLAlchemyAdapter,
        obj: Any,
        config: SluggableConfig,
        slug: str,
        *,
        prefix: str = "",
    ) -> str:
        """Append ``<separator><n>`` until no other object of the hierarchy uses the slug.

        Taken slugs come from storage plus loaded and pending objects, since
        in-memory values may not have been flushed yet.

        Raises:
            SluggableError: If no free suffix is found within
                ``settings.max_unique_attempts`` tries.
        """
        separator = config.separator
        taken = adapter.stored_slugs(obj, config.slug_field, slug, separator)
        for other in chain(adapter.loaded_objects(obj), adapter.pending_objects(obj)):
            if other is obj or not adapter.is_initialized(other, config.slug_field):
                continue
            value = adapter.get_property(other, config.slug_field)
            if value:
                taken.add(value)

        if slug not in taken:
            return slug

        for index in range(1, self.settings.max_unique_attempts + 1):
            suffix = f"{separator}{index}"
            base = slug
            if config.length:
                base = truncate(slug, config.length - len(suffix), separator, prefix)
                if not base:
                    break
            candidate = f"{base}{suffix}"
            if candidate not in taken:
                return candidate

        raise SluggableError(
            "Unable to find a unique slug",
            details={"model": type(obj).__name__, "slug": slug},
        )


__all__ = [
    "SluggableListener",
    "truncate",
]
