"""Tests for regenerate_slugs."""

from __future__ import annotations

import pytest
from sqlalchemy import select, update

from slugtree.core.database.exceptions import InvalidMappingError
from slugtree.core.database.sluggable import SluggableListener, regenerate_slugs
from slugtree.core.settings import SluggableSettings
from tests.models import Category


async def seed_tree(session) -> None:
    food = Category(title="Food")
    fruits = Category(title="Fruits", parent=food)
    session.add_all([food, fruits, Category(title="Apples", parent=fruits)])
    await session.flush()
    session.expunge_all()


async def stored_slugs(session) -> list[str | None]:
    result = await session.scalars(select(Category.slug).order_by(Category.id))
    return list(result)


@pytest.mark.unit
class TestRegenerateSlugs:
    """Bulk rebuild of every stored row."""

    async def test_fills_missing_slugs(self, sluggable_session, listener):
        await seed_tree(sluggable_session)
        await sluggable_session.execute(update(Category).values(slug=None))

        changed = await sluggable_session.run_sync(regenerate_slugs, listener, Category)
        await sluggable_session.flush()

        assert changed == 3
        assert await stored_slugs(sluggable_session) == [
            "food",
            "food/fruits",
            "food/fruits/apples",
        ]

    async def test_title_changed_outside_the_orm(self, sluggable_session, listener):
        await seed_tree(sluggable_session)
        await sluggable_session.execute(
            update(Category).where(Category.title == "Food").values(title="Produce")
        )

        changed = await sluggable_session.run_sync(regenerate_slugs, listener, Category)
        await sluggable_session.flush()

        assert changed == 3
        assert await stored_slugs(sluggable_session) == [
            "produce",
            "produce/fruits",
            "produce/fruits/apples",
        ]

    async def test_up_to_date_slugs_are_not_counted(self, sluggable_session, listener):
        await seed_tree(sluggable_session)

        changed = await sluggable_session.run_sync(regenerate_slugs, listener, Category)

        assert changed == 0
        assert not sluggable_session.dirty

    async def test_unregistered_model_is_rejected(self, db_session):
        listener = SluggableListener(settings=SluggableSettings())

        with pytest.raises(InvalidMappingError, match="not registered"):
            await db_session.run_sync(regenerate_slugs, listener, Category)
