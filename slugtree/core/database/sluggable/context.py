"""Per-build state shared by the listener and slug handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from slugtree.core.database.sluggable.transliteration import Transliterator


@dataclass
class SlugBuildContext:
    """Transient state of one slug build for one object.

    Created by the listener when it starts computing the slug of ``obj`` and
    discarded after the completion hooks ran.

    Attributes:
        obj: The object whose slug is being built
        slug_field: Name of the slug attribute
        transliterator: Strategy used for this build; handlers may wrap it
        is_insert: True when ``obj`` is pending insertion
        parent_slug: Current slug of the tree parent, empty for roots
        prefix: Leading part added by a handler, kept whole when the slug
            is truncated
        original_transliterator: Strategy saved by the handler that wrapped
            ``transliterator``, restored after the wrapped call
    """

    obj: Any
    slug_field: str
    transliterator: Transliterator
    is_insert: bool = False
    parent_slug: str = ""
    prefix: str = ""
    original_transliterator: Transliterator | None = field(default=None, repr=False)

    def transliterate(self, text: str, separator: str) -> str:
        """Run the currently active strategy for this build."""
        return self.transliterator(text, separator, self.obj)
