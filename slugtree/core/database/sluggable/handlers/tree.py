"""Tree slug handler.

Slugs every node with the slugs of all its ancestors and keeps loaded
descendants in sync on updates. For instance a category tree slug could look
like ``food/fruits/apples``.

Declaration:
    class Category(Base, IntegerPKMixin, SluggableMixin):
        __slug_fields__ = ("title",)
        __slug_handlers__ = {
            TreeSlugHandler: {"parent_relation_field": "parent", "separator": "/"},
        }
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import partial
import logging
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from slugtree.core.database.exceptions import InvalidMappingError
from slugtree.core.database.sluggable.handlers.base import SlugHandler
from slugtree.core.database.sluggable.options import OptionCache, TreeSlugOptions, type_name

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper

    from slugtree.core.database.sluggable.adapter import SluggableAdapter
    from slugtree.core.database.sluggable.context import SlugBuildContext
    from slugtree.core.database.sluggable.listener import SluggableListener
    from slugtree.core.settings.sluggable import SluggableSettings

logger = logging.getLogger(__name__)


def _describe_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'options'}: {error['msg']}"
        for error in exc.errors()
    )


class TreeSlugHandler(SlugHandler):
    """Prefix slugs with the parent slug and propagate renames.

    Options (see ``TreeSlugOptions``):
        separator: Placed between parent slug and own segment (default ``/``)
        parent_relation_field: Many-to-one relationship to the parent node
        sync_storage: Also rewrite descendant slugs in storage on rename
    """

    def __init__(self, sluggable: SluggableListener) -> None:
        super().__init__(sluggable)
        self.options: OptionCache[TreeSlugOptions] = OptionCache()

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def get_options(self, obj: Any) -> TreeSlugOptions:
        cls = type(obj)
        return self.options.get_or_resolve(type_name(cls), lambda: self._resolve_options(cls))

    def _resolve_options(self, cls: type) -> TreeSlugOptions:
        config = self.sluggable.get_configuration(cls)
        raw = config.handlers.get(type(self)) if config is not None else None
        if raw is None:
            raise InvalidMappingError(cls.__name__, "Tree slug handler is not configured")
        return self.build_options(raw, cls.__name__, self.sluggable.settings)

    def clear_options(self) -> None:
        self.options.clear()

    @staticmethod
    def build_options(
        raw: Mapping[str, Any],
        model_name: str,
        settings: SluggableSettings,
    ) -> TreeSlugOptions:
        """Merge declared options over the settings defaults and validate them."""
        defaults = {
            "separator": settings.tree_separator,
            "sync_storage": settings.tree_sync_storage,
        }
        try:
            return TreeSlugOptions.model_validate({**defaults, **raw})
        except ValidationError as exc:
            raise InvalidMappingError(
                model_name, f"Invalid tree slug options: {_describe_errors(exc)}"
            ) from exc

    @classmethod
    def validate(cls, options: Mapping[str, Any], mapper: Mapper[Any]) -> None:
        model_name = mapper.class_.__name__
        field = options.get("parent_relation_field")
        if not field:
            raise InvalidMappingError(
                model_name, "Tree slug handler requires a parent_relation_field option"
            )
        try:
            TreeSlugOptions.model_validate(options)
        except ValidationError as exc:
            raise InvalidMappingError(
                model_name, f"Invalid tree slug options: {_describe_errors(exc)}", field=field
            ) from exc

        relationship = mapper.relationships.get(field)
        if relationship is None or relationship.uselist:
            raise InvalidMappingError(
                model_name,
                f"Unable to find tree parent slug relation through field - [{field}]",
                field=field,
            )

    # ------------------------------------------------------------------
    # Pipeline hooks
    # ------------------------------------------------------------------

    def on_change_decision(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str | None,
        needs_change: bool,
    ) -> bool:
        context.is_insert = adapter.is_scheduled_for_insert(context.obj)
        if context.is_insert or needs_change:
            return needs_change

        options = self.get_options(context.obj)
        changed = adapter.get_change_set(context.obj)
        if adapter.relation_keys(context.obj, options.parent_relation_field) & changed.keys():
            logger.debug(
                "Parent relation changed, rebuilding slug",
                extra={"model": type(context.obj).__name__, "slug": slug},
            )
            return True
        return needs_change

    def post_slug_build(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str,
    ) -> None:
        options = self.get_options(context.obj)
        context.original_transliterator = context.transliterator
        context.transliterator = partial(self.transliterate, context)
        context.parent_slug = ""

        parent = adapter.get_related(context.obj, options.parent_relation_field)
        if parent is not None:
            context.parent_slug = adapter.get_property(parent, context.slug_field) or ""

    def transliterate(
        self,
        context: SlugBuildContext,
        text: str,
        separator: str,
        obj: Any,
    ) -> str:
        """Transliterate with the saved strategy and prefix the parent slug.

        Restores the saved strategy on the context, so the prefix is applied
        exactly once per build. An empty own segment gives an empty slug.
        The prefix is recorded on the context so truncation keeps it whole.
        """
        original = context.original_transliterator
        if original is None:
            msg = "post_slug_build() must run before transliterate()"
            raise RuntimeError(msg)

        slug = original(text, separator, obj)
        context.transliterator = original
        if slug and context.parent_slug:
            context.prefix = f"{context.parent_slug}{self.get_options(obj).separator}"
            slug = f"{context.prefix}{slug}"
        return slug

    def on_slug_completion(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str | None,
    ) -> None:
        if context.is_insert:
            return

        obj = context.obj
        options = self.get_options(obj)
        changes = adapter.get_change_set(obj)
        if context.slug_field in changes:
            # Slug edited by hand, descendants still carry the committed one
            target = changes[context.slug_field][0]
        else:
            target = adapter.get_property(obj, context.slug_field)
        if not target or slug is None or target == slug:
            return

        rewritten = self.propagate(adapter, obj, context.slug_field, target, slug, options.separator)
        stored = 0
        if options.sync_storage:
            stored = adapter.replace_relative(obj, context.slug_field, target, options.separator, slug)

        logger.debug(
            "Propagated slug prefix",
            extra={
                "model": type(obj).__name__,
                "target": target,
                "slug": slug,
                "rewritten": rewritten,
                "stored": stored,
            },
        )

    def propagate(
        self,
        adapter: SluggableAdapter,
        obj: Any,
        slug_field: str,
        target: str,
        slug: str,
        separator: str,
    ) -> int:
        """Rewrite ``target + separator`` prefixes of loaded objects to ``slug + separator``.

        Objects whose slug attribute is not loaded are skipped without being
        loaded, and so are objects with a pending slug edit since their own
        build prefixes that edit. The rewritten value also becomes the
        committed value, so the flush does not write it again.

        Returns:
            Number of rewritten objects.
        """
        # Anchored at the start of the slug
        pattern = re.compile(re.escape(target + separator), re.IGNORECASE)
        replacement = f"{slug}{separator}"
        rewritten = 0

        for candidate in adapter.loaded_objects(obj):
            if candidate is obj or not adapter.is_initialized(candidate, slug_field):
                continue
            value = adapter.get_property(candidate, slug_field)
            match = pattern.match(value) if value else None
            if match is None or slug_field in adapter.get_change_set(candidate):
                continue
            value = replacement + value[match.end() :]
            adapter.set_original_value(candidate, slug_field, value)
            rewritten += 1

        return rewritten

    def get_dependencies(self, adapter: SluggableAdapter, obj: Any) -> list[Any]:
        parent = adapter.get_related(obj, self.get_options(obj).parent_relation_field)
        return [] if parent is None else [parent]
