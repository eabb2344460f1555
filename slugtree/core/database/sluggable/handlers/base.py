"""Slug handler interface.

A handler plugs into the slug pipeline of the listener. Every hook receives
the adapter for the current session and the build context of the object.
Hooks run in this order for one object:

    on_change_decision -> post_slug_build -> [transliteration]
    -> on_slug_completion

``validate`` runs once when a model declaring the handler is registered.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlalchemy.orm import Mapper

    from slugtree.core.database.sluggable.adapter import SluggableAdapter
    from slugtree.core.database.sluggable.context import SlugBuildContext
    from slugtree.core.database.sluggable.listener import SluggableListener


class SlugHandler(ABC):
    """Base class for slug handlers.

    One instance exists per listener and handler class, shared by every
    model declaring the handler; per-object state lives on the build context.
    """

    def __init__(self, sluggable: SluggableListener) -> None:
        self.sluggable = sluggable

    @abstractmethod
    def get_options(self, obj: Any) -> Any:
        """Return the resolved options of this handler for ``obj``'s model."""

    @classmethod
    @abstractmethod
    def validate(cls, options: Mapping[str, Any], mapper: Mapper[Any]) -> None:
        """Check handler options against the model mapping.

        Raises:
            InvalidMappingError: If the options do not fit the mapping.
        """

    def on_change_decision(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str | None,
        needs_change: bool,
    ) -> bool:
        """Return whether the slug must be rebuilt."""
        return needs_change

    def post_slug_build(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str,
    ) -> None:
        """Called with the source text right before transliteration."""

    def on_slug_completion(
        self,
        adapter: SluggableAdapter,
        context: SlugBuildContext,
        slug: str | None,
    ) -> None:
        """Called with the final slug before it is assigned to the object."""

    def get_dependencies(self, adapter: SluggableAdapter, obj: Any) -> list[Any]:
        """Objects whose slug must be built before the slug of ``obj``."""
        return []

    def clear_options(self) -> None:
        """Forget resolved options, e.g. after a model was registered again."""
