"""Text-to-slug transliteration strategies.

A transliterator turns arbitrary source text into a URL-safe slug segment.
Every slug build receives its own transliterator on the build context, so a
handler can wrap it for one build without touching the listener default.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from slugify import slugify

from slugtree.core.settings.sluggable import SlugStyle

Transliterator = Callable[[str, str, Any], str]
"""Signature: ``(text, separator, obj) -> slug``."""


def default_transliterator(text: str, separator: str, obj: Any = None) -> str:  # noqa: ARG001
    """Transliterate text into a lowercase ASCII slug.

    Unicode is transliterated (``"Café à Paris"`` -> ``"cafe-a-paris"``),
    punctuation is dropped and words are joined by ``separator``.

    Args:
        text: Source text
        separator: Word separator
        obj: The object being slugged (unused, part of the protocol)

    Returns:
        Slug segment, possibly empty.
    """
    return slugify(text, separator=separator)


def apply_style(slug: str, style: SlugStyle, separator: str) -> str:
    """Apply the configured casing to a slug segment.

    Args:
        slug: Transliterated slug
        style: ``default`` keeps the transliterator output
        separator: Word separator, used to find word starts for ``camel``

    Returns:
        Styled slug.
    """
    if style == "lower":
        return slug.lower()
    if style == "upper":
        return slug.upper()
    if style == "camel":
        pattern = re.compile(rf"(^|{re.escape(separator)})([a-z])")
        return pattern.sub(lambda m: m.group(1) + m.group(2).upper(), slug)
    return slug


def styled(transliterator: Transliterator, style: SlugStyle) -> Transliterator:
    """Compose a transliterator with a style step.

    Args:
        transliterator: Base strategy
        style: Casing applied to the base strategy output

    Returns:
        A transliterator with the same signature.
    """
    if style == "default":
        return transliterator

    def _styled(text: str, separator: str, obj: Any) -> str:
        return apply_style(transliterator(text, separator, obj), style, separator)

    return _styled


__all__ = [
    "Transliterator",
    "apply_style",
    "default_transliterator",
    "styled",
]
