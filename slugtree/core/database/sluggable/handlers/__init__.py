"""Slug handlers plugging into the sluggable listener pipeline."""

from slugtree.core.database.sluggable.handlers.base import SlugHandler
from slugtree.core.database.sluggable.handlers.tree import TreeSlugHandler

__all__ = [
    "SlugHandler",
    "TreeSlugHandler",
]
