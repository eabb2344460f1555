"""Declarative base and primary key mixin for slugtree models.

Example:
    class Category(Base, IntegerPKMixin, SluggableMixin):
        __tablename__ = "categories"
        __slug_fields__ = ("title",)
        __slug_handlers__ = {TreeSlugHandler: {"parent_relation_field": "parent"}}

        title: Mapped[str] = mapped_column(String(255))
        slug: Mapped[str | None] = mapped_column(String(255))
        parent_id: Mapped[int | None] = mapped_column(ForeignKey("categories.id"))
        parent: Mapped[Category | None] = relationship(remote_side="Category.id")
"""

from __future__ import annotations

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Constraint names stay stable across dialects and migrations
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base.

    Tables default to the lowercased class name unless ``__tablename__`` is
    set on the model.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


class IntegerPKMixin:
    """Adds an auto-incrementing integer ``id`` primary key."""

    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)


__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "IntegerPKMixin",
]
