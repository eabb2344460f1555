"""Tests for SluggableListener against an async SQLite session.

Covers slug generation on flush, tree prefixes, rename propagation,
uniqueness and the listener's registration and event wiring.
"""

from __future__ import annotations

from datetime import date
import logging

import pytest
from sqlalchemy import event, select
from sqlalchemy.orm import Session

from slugtree.core.database.base import Base
from slugtree.core.database.exceptions import SluggableError
from slugtree.core.database.sluggable import SluggableListener, TreeSlugHandler
from slugtree.core.database.sluggable.listener import truncate
from slugtree.core.settings import SluggableSettings
from tests.models import Category, Event, Folder, Node, SyncedCategory, Tag


async def build_tree(session, model=Category):
    food = model(title="Food")
    fruits = model(title="Fruits", parent=food)
    apples = model(title="Apples", parent=fruits)
    session.add_all([food, fruits, apples])
    await session.flush()
    return food, fruits, apples


# ============================================================================
# Tree slugs on insert
# ============================================================================


@pytest.mark.unit
class TestTreeInsert:
    """Slugs of new nodes include every ancestor."""

    async def test_children_are_prefixed_with_ancestors(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)

        assert food.slug == "food"
        assert fruits.slug == "food/fruits"
        assert apples.slug == "food/fruits/apples"

    async def test_children_added_before_parents_are_still_prefixed(self, sluggable_session):
        food = Category(title="Food")
        fruits = Category(title="Fruits", parent=food)
        apples = Category(title="Apples", parent=fruits)
        sluggable_session.add(apples)
        sluggable_session.add(fruits)
        sluggable_session.add(food)

        await sluggable_session.flush()

        assert apples.slug == "food/fruits/apples"

    async def test_child_of_existing_parent(self, sluggable_session):
        food, fruits, _ = await build_tree(sluggable_session)
        food.title = "Produce"
        await sluggable_session.flush()

        kiwi = Category(title="Kiwi", parent=fruits)
        sluggable_session.add(kiwi)
        await sluggable_session.flush()

        assert kiwi.slug == "produce/fruits/kiwi"
        assert fruits.slug == "produce/fruits"

    async def test_child_inserted_with_renamed_grandparent(self, sluggable_session):
        food, fruits, _ = await build_tree(sluggable_session)

        food.title = "Produce"
        kiwi = Category(title="Kiwi", parent=fruits)
        sluggable_session.add(kiwi)
        await sluggable_session.flush()

        assert kiwi.slug == "produce/fruits/kiwi"

    async def test_unicode_titles_are_transliterated(self, sluggable_session):
        root = Category(title="Crème Brûlée")
        child = Category(title="Über Rezepte", parent=root)
        sluggable_session.add_all([root, child])

        await sluggable_session.flush()

        assert child.slug == "creme-brulee/uber-rezepte"

    async def test_polymorphic_tree_uses_declared_separator(self, sluggable_session):
        docs = Node(name="Docs")
        guides = Folder(name="User Guides", parent=docs)
        intro = Node(name="Intro", parent=guides)
        sluggable_session.add_all([docs, guides, intro])

        await sluggable_session.flush()

        assert intro.slug == "docs.user-guides.intro"


# ============================================================================
# Propagation on update
# ============================================================================


@pytest.mark.unit
class TestTreePropagation:
    """Renames reach loaded descendants without reloading them."""

    async def test_rename_root_rewrites_loaded_descendants(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)

        food.title = "Produce"
        await sluggable_session.flush()

        assert food.slug == "produce"
        assert fruits.slug == "produce/fruits"
        assert apples.slug == "produce/fruits/apples"

    async def test_rewritten_descendants_are_not_dirty(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)

        food.title = "Produce"
        await sluggable_session.flush()

        assert fruits not in sluggable_session.dirty
        assert apples not in sluggable_session.dirty
        stored = await sluggable_session.scalar(
            select(Category.slug).where(Category.id == fruits.id)
        )
        assert stored == "food/fruits"

    async def test_unloaded_descendants_are_left_alone(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)
        sluggable_session.expire(fruits, ["slug"])

        food.title = "Produce"
        await sluggable_session.flush()

        assert apples.slug == "produce/fruits/apples"
        await sluggable_session.refresh(fruits, ["slug"])
        assert fruits.slug == "food/fruits"

    async def test_rename_middle_node(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)
        pears = Category(title="Pears", parent=fruits)
        drinks = Category(title="Drinks")
        sluggable_session.add_all([pears, drinks])
        await sluggable_session.flush()

        fruits.title = "Fresh Fruit"
        await sluggable_session.flush()

        assert food.slug == "food"
        assert fruits.slug == "food/fresh-fruit"
        assert apples.slug == "food/fresh-fruit/apples"
        assert pears.slug == "food/fresh-fruit/pears"
        assert drinks.slug == "drinks"

    async def test_moving_a_node_rebuilds_its_subtree(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)
        market = Category(title="Market")
        sluggable_session.add(market)
        await sluggable_session.flush()

        fruits.parent = market
        await sluggable_session.flush()

        assert fruits.slug == "market/fruits"
        assert apples.slug == "market/fruits/apples"

    async def test_moving_by_foreign_key_rebuilds_its_subtree(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)
        market = Category(title="Market")
        sluggable_session.add(market)
        await sluggable_session.flush()

        fruits.parent_id = market.id
        await sluggable_session.flush()

        assert fruits.slug == "market/fruits"
        assert apples.slug == "market/fruits/apples"
        stored = await sluggable_session.scalar(
            select(Category.slug).where(Category.id == fruits.id)
        )
        assert stored == "market/fruits"

    async def test_foreign_key_to_root(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)

        fruits.parent_id = None
        await sluggable_session.flush()

        assert fruits.slug == "fruits"
        assert apples.slug == "fruits/apples"

    async def test_pending_slug_edit_of_descendant_is_kept(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)

        apples.slug = "food/fruits/green apples"
        food.title = "Produce"
        await sluggable_session.flush()

        assert fruits.slug == "produce/fruits"
        assert apples.slug == "produce/fruits/food-fruits-green-apples"
        stored = await sluggable_session.scalar(
            select(Category.slug).where(Category.id == apples.id)
        )
        assert stored == apples.slug

    async def test_child_without_own_segment_gets_no_slug(self, sluggable_session):
        food, _, _ = await build_tree(sluggable_session)
        blank = Category(title="!!!", parent=food)
        sluggable_session.add(blank)

        await sluggable_session.flush()

        stored = await sluggable_session.scalar(
            select(Category.slug).where(Category.id == blank.id)
        )
        assert stored is None

    async def test_moving_to_root(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)

        fruits.parent = None
        await sluggable_session.flush()

        assert fruits.slug == "fruits"
        assert apples.slug == "fruits/apples"

    async def test_manual_slug_is_prefixed_and_propagated(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)

        fruits.slug = "Exotic Fruits"
        await sluggable_session.flush()

        assert fruits.slug == "food/exotic-fruits"
        assert apples.slug == "food/exotic-fruits/apples"

    async def test_unrelated_update_keeps_slugs(self, sluggable_session):
        food, fruits, apples = await build_tree(sluggable_session)
        fruits.title = "Fruits"
        await sluggable_session.flush()

        assert food.slug == "food"
        assert apples.slug == "food/fruits/apples"

    async def test_other_trees_are_untouched(self, sluggable_session):
        food, _, _ = await build_tree(sluggable_session)
        docs = Node(name="Food")
        page = Node(name="Page", parent=docs)
        sluggable_session.add_all([docs, page])
        await sluggable_session.flush()

        food.title = "Produce"
        await sluggable_session.flush()

        assert docs.slug == "food"
        assert page.slug == "food.page"

    async def test_polymorphic_descendants_are_rewritten(self, sluggable_session):
        docs = Node(name="Docs")
        guides = Folder(name="Guides", parent=docs)
        intro = Node(name="Intro", parent=guides)
        sluggable_session.add_all([docs, guides, intro])
        await sluggable_session.flush()

        docs.name = "Manual"
        await sluggable_session.flush()

        assert guides.slug == "manual.guides"
        assert intro.slug == "manual.guides.intro"


@pytest.mark.unit
class TestStorageSync:
    """Trees declaring sync_storage also rewrite stored descendants."""

    async def test_rename_updates_rows_outside_the_session(self, sluggable_session):
        food, _, apples = await build_tree(sluggable_session, SyncedCategory)
        sluggable_session.expunge(apples)

        food.title = "Produce"
        await sluggable_session.flush()

        slugs = await sluggable_session.scalars(
            select(SyncedCategory.slug).order_by(SyncedCategory.id)
        )
        assert list(slugs) == ["produce", "produce/fruits", "produce/fruits/apples"]

    async def test_similar_prefixes_are_not_rewritten(self, sluggable_session):
        food, _, _ = await build_tree(sluggable_session, SyncedCategory)
        foodie = SyncedCategory(title="Foodie")
        blog = SyncedCategory(title="Blog", parent=foodie)
        sluggable_session.add_all([foodie, blog])
        await sluggable_session.flush()

        food.title = "Produce"
        await sluggable_session.flush()

        stored = await sluggable_session.scalar(
            select(SyncedCategory.slug).where(SyncedCategory.id == blog.id)
        )
        assert stored == "foodie/blog"


# ============================================================================
# Flat slugs
# ============================================================================


@pytest.mark.unit
class TestSlugGeneration:
    """Options shared by every sluggable model."""

    async def test_duplicate_roots_get_numeric_suffix(self, sluggable_session):
        first = Category(title="Food")
        second = Category(title="Food")
        sluggable_session.add_all([first, second])

        await sluggable_session.flush()

        assert {first.slug, second.slug} == {"food", "food-1"}

    async def test_duplicate_siblings_get_numeric_suffix(self, sluggable_session):
        _, fruits, apples = await build_tree(sluggable_session)
        more = Category(title="Apples", parent=fruits)
        sluggable_session.add(more)

        await sluggable_session.flush()

        assert apples.slug == "food/fruits/apples"
        assert more.slug == "food/fruits/apples-1"

    async def test_same_label_under_different_parents_is_unique(self, sluggable_session):
        food = Category(title="Food")
        drinks = Category(title="Drinks")
        a = Category(title="Organic", parent=food)
        b = Category(title="Organic", parent=drinks)
        sluggable_session.add_all([food, drinks, a, b])

        await sluggable_session.flush()

        assert a.slug == "food/organic"
        assert b.slug == "drinks/organic"

    async def test_stored_slugs_are_taken(self, sluggable_session):
        first = Tag(name="Python")
        sluggable_session.add(first)
        await sluggable_session.flush()
        sluggable_session.expunge(first)

        second = Tag(name="python")
        sluggable_session.add(second)
        await sluggable_session.flush()

        assert second.slug == "python-1"

    async def test_slug_is_truncated_to_column_length(self, sluggable_session):
        first = Tag(name="A very long tag name")
        second = Tag(name="A very long tag name")
        sluggable_session.add_all([first, second])

        await sluggable_session.flush()

        assert first.slug == "a-very-long"
        assert second.slug == "a-very-lon-1"

    async def test_empty_slug_on_nullable_column_is_null(self, sluggable_session):
        tag = Tag(name="!!!")
        sluggable_session.add(tag)

        await sluggable_session.flush()

        stored = await sluggable_session.scalar(select(Tag.slug).where(Tag.id == tag.id))
        assert stored is None

    async def test_date_sources_style_and_separator(self, sluggable_session):
        launch = Event(title="Launch Party", held_on=date(2024, 5, 1))
        sluggable_session.add(launch)

        await sluggable_session.flush()

        assert launch.code == "LAUNCH_PARTY_2024_05_01"

    async def test_not_updatable_keeps_slug(self, sluggable_session):
        launch = Event(title="Launch Party", held_on=date(2024, 5, 1))
        sluggable_session.add(launch)
        await sluggable_session.flush()

        launch.title = "Release Party"
        await sluggable_session.flush()

        assert launch.code == "LAUNCH_PARTY_2024_05_01"

    async def test_manual_slug_on_insert(self, sluggable_session):
        food = Category(title="Food", slug="Groceries & More")
        sluggable_session.add(food)

        await sluggable_session.flush()

        assert food.slug == "groceries-more"

    async def test_changed_title_updates_flat_slug(self, sluggable_session):
        tag = Tag(name="Python")
        sluggable_session.add(tag)
        await sluggable_session.flush()

        tag.name = "Rust"
        await sluggable_session.flush()

        assert tag.slug == "rust"

    async def test_generation_is_logged(self, sluggable_session, caplog):
        caplog.set_level(logging.DEBUG, logger="slugtree")
        sluggable_session.add(Tag(name="Python"))

        await sluggable_session.flush()

        record = next(r for r in caplog.records if r.getMessage() == "Generated slug")
        assert record.slug == "python"
        assert record.model == "Tag"


@pytest.mark.unit
class TestTruncate:
    """Length limits that keep the parent prefix whole."""

    def test_short_slug_is_unchanged(self):
        assert truncate("food/fruits", 20, "-", "food/") == "food/fruits"

    def test_cut_stays_after_prefix(self):
        assert truncate("food/green-apples", 11, "-", "food/") == "food/green"

    def test_prefix_without_room_gives_empty_slug(self):
        assert truncate("food/fruits/apples", 12, "-", "food/fruits/") == ""

    def test_without_prefix_cuts_plainly(self):
        assert truncate("a-very-long", 7, "-") == "a-very"


@pytest.mark.unit
class TestMakeUnique:
    """Suffix search limits."""

    async def test_gives_up_after_max_attempts(self, db_session):
        listener = SluggableListener(settings=SluggableSettings(max_unique_attempts=2))
        listener.register(Tag)
        listener.configure(db_session)
        try:
            db_session.add_all([Tag(name="Go") for _ in range(4)])

            with pytest.raises(SluggableError, match="Unable to find a unique slug"):
                await db_session.flush()
        finally:
            listener.remove_listeners()


# ============================================================================
# Registration and wiring
# ============================================================================


@pytest.mark.unit
class TestRegistration:
    """Model registration and configuration lookup."""

    def test_register_all_finds_sluggable_models(self):
        listener = SluggableListener(settings=SluggableSettings())

        configs = listener.register_all(Base)

        models = {config.model for config in configs}
        assert {Category, SyncedCategory, Node, Tag, Event} <= models

    def test_subclass_uses_parent_configuration(self, listener):
        assert listener.get_configuration(Folder) is listener.get_configuration(Node)

    def test_unregistered_model_has_no_configuration(self):
        listener = SluggableListener(settings=SluggableSettings())

        assert listener.get_configuration(Category) is None

    def test_reregistering_drops_cached_options(self, listener, monkeypatch):
        handler = listener.get_handler(TreeSlugHandler)
        assert handler.get_options(Category(title="Food")).separator == "/"

        monkeypatch.setattr(
            Category,
            "__slug_handlers__",
            {TreeSlugHandler: {"parent_relation_field": "parent", "separator": "."}},
        )
        listener.register(Category)

        assert handler.get_options(Category(title="Food")).separator == "."

    def test_handlers_are_shared(self, listener):
        assert listener.get_handler(TreeSlugHandler) is listener.get_handler(TreeSlugHandler)

    def test_configuration_values(self, listener):
        config = listener.get_configuration(Event)

        assert config.slug_field == "code"
        assert config.separator == "_"
        assert config.style == "upper"
        assert config.updatable is False
        assert config.nullable is False
        assert config.length == 128


@pytest.mark.unit
class TestEventWiring:
    """before_flush hook management."""

    def test_configure_and_remove_on_session_class(self, listener):
        listener.configure(Session)
        assert event.contains(Session, "before_flush", listener._before_flush)

        listener.remove_listeners()
        assert not event.contains(Session, "before_flush", listener._before_flush)

    def test_async_session_is_unwrapped(self, listener, db_session):
        listener.configure(db_session)

        assert event.contains(db_session.sync_session, "before_flush", listener._before_flush)

    async def test_removed_listener_stops_slugging(self, listener, db_session):
        listener.configure(db_session)
        listener.remove_listeners()

        tag = Tag(name="Python")
        db_session.add(tag)
        await db_session.flush()

        stored = await db_session.scalar(select(Tag.slug).where(Tag.id == tag.id))
        assert stored is None
