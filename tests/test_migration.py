"""Tests for the Migrator."""

from __future__ import annotations

import pytest

from schemabrew.descriptor import Descriptor
from schemabrew.migration import Migration, load_migrations
from schemabrew.migrator import Migrator
from schemabrew.registry import MigrationRegistry


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def loaded_registry(migrations_dir) -> MigrationRegistry:
    """A registry holding the sample migrations (revisions 1, 2, 10)."""
    registry = MigrationRegistry()
    for m in load_migrations(migrations_dir):
        registry.register(m)
    return registry


@pytest.fixture
async def migrator(loaded_registry: MigrationRegistry):
    """Create and initialise a Migrator over an in-memory database."""
    m = Migrator(":memory:", loaded_registry)
    await m.initialize()
    yield m
    await m.close()


async def table_names(migrator: Migrator) -> set[str]:
    cursor = await migrator.connection.execute(
        "SELECT name FROM sqlite_master WHERE type='table'"
    )
    return {row["name"] for row in await cursor.fetchall()}


async def index_names(migrator: Migrator) -> set[str]:
    cursor = await migrator.connection.execute(
        "SELECT name FROM sqlite_master WHERE type='index'"
    )
    return {row["name"] for row in await cursor.fetchall()}


# ------------------------------------------------------------------
# Tests
# ------------------------------------------------------------------


async def test_fresh_database_has_no_revision(migrator: Migrator):
    assert await migrator.get_current_revision() is None
    assert await migrator.get_applied() == []
    assert "schema_migrations" in await table_names(migrator)


async def test_apply_pending(migrator: Migrator):
    """apply_pending runs every up section in revision order."""
    applied = await migrator.apply_pending()

    assert applied == ["0001_create_users.sql", "0002_create_posts.sql", "0010_index_posts.sql"]
    assert await migrator.get_current_revision() == 10
    assert {"users", "posts"} <= await table_names(migrator)
    assert "idx_posts_user" in await index_names(migrator)

    rows = await migrator.get_applied()
    assert [r["revision"] for r in rows] == [1, 2, 10]
    assert all(r["applied_at"] for r in rows)


async def test_apply_pending_is_idempotent(migrator: Migrator):
    await migrator.apply_pending()
    assert await migrator.apply_pending() == []


async def test_apply_pending_picks_up_new_revisions(migrator: Migrator, loaded_registry):
    await migrator.apply_pending()

    loaded_registry.register(Migration(
        revision=11,
        descriptor=Descriptor.create(
            "-- migrate: up\nALTER TABLE users ADD COLUMN name TEXT;\n", "0011_add_name.sql"
        ),
    ))
    assert await migrator.apply_pending() == ["0011_add_name.sql"]
    assert await migrator.get_current_revision() == 11


async def test_rollback_all(migrator: Migrator):
    await migrator.apply_pending()
    reverted = await migrator.rollback()

    assert reverted == ["0010_index_posts.sql", "0002_create_posts.sql", "0001_create_users.sql"]
    assert await migrator.get_current_revision() is None
    assert not {"users", "posts"} & await table_names(migrator)


async def test_revision_zero_is_applied_and_rolled_back():
    registry = MigrationRegistry()
    registry.register(Migration(0, Descriptor.create(
        "-- migrate: up\nCREATE TABLE a (id INTEGER);\n-- migrate: down\nDROP TABLE a;\n",
        "0000_init.sql",
    )))
    async with Migrator(":memory:", registry) as m:
        assert await m.apply_pending() == ["0000_init.sql"]
        assert await m.get_current_revision() == 0
        assert "a" in await table_names(m)
        assert await m.apply_pending() == []

        assert await m.rollback() == ["0000_init.sql"]
        assert await m.get_current_revision() is None
        assert "a" not in await table_names(m)


async def test_rollback_to_target(migrator: Migrator):
    await migrator.apply_pending()
    reverted = await migrator.rollback(target=1)

    assert reverted == ["0010_index_posts.sql", "0002_create_posts.sql"]
    assert await migrator.get_current_revision() == 1
    tables = await table_names(migrator)
    assert "users" in tables
    assert "posts" not in tables


async def test_rollback_stops_at_unregistered_revision(migrator: Migrator):
    await migrator.apply_pending()
    other = MigrationRegistry()
    other.register(migrator.registry.get(10))
    migrator.registry = other

    reverted = await migrator.rollback()

    assert reverted == ["0010_index_posts.sql"]
    assert await migrator.get_current_revision() == 2


async def test_context_manager(loaded_registry):
    async with Migrator(":memory:", loaded_registry) as m:
        assert await m.apply_pending()
    assert m._conn is None


async def test_file_database_persists(tmp_path, loaded_registry):
    db_path = str(tmp_path / "data" / "app.db")
    async with Migrator(db_path, loaded_registry) as m:
        await m.apply_pending()
    async with Migrator(db_path, loaded_registry) as m:
        assert await m.get_current_revision() == 10
        assert await m.apply_pending() == []


async def test_uninitialized_migrator_raises():
    with pytest.raises(RuntimeError, match="not initialized"):
        await Migrator(":memory:", MigrationRegistry()).apply_pending()
