"""Handler options and the per-type option cache."""

from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


def type_name(cls: type) -> str:
    """Return the fully qualified name used as cache key for a model class."""
    return f"{cls.__module__}.{cls.__qualname__}"


class TreeSlugOptions(BaseModel):
    """Options of the tree slug handler for one model.

    Example:
        {"separator": "/", "parent_relation_field": "parent"}
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    separator: str = Field(default="/", min_length=1)
    parent_relation_field: str = Field(min_length=1)
    sync_storage: bool = False


class OptionCache(Generic[T]):
    """Options resolved once per model type.

    Owned by a handler instance and mutated only through ``get_or_resolve``.
    Not guarded for concurrent writers; share one per thread if needed.
    """

    def __init__(self) -> None:
        self._options: dict[str, T] = {}

    def get_or_resolve(self, key: str, resolve: Callable[[], T]) -> T:
        """Return the cached options for ``key``, resolving them on a miss."""
        if key not in self._options:
            self._options[key] = resolve()
        return self._options[key]

    def clear(self) -> None:
        self._options.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._options

    def __len__(self) -> int:
        return len(self._options)


__all__ = [
    "OptionCache",
    "TreeSlugOptions",
    "type_name",
]
