# tests/conftest.py
from textwrap import dedent

import pytest

from schemabrew.registry import MigrationRegistry


USERS_SQL = dedent("""\
    -- package: accounts

    -- migrate: up
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        email TEXT NOT NULL
    );

    -- migrate: down
    DROP TABLE users;
""")

POSTS_SQL = dedent("""\
    -- package: accounts
    -- migrate: up
    CREATE TABLE posts (id INTEGER PRIMARY KEY, user_id INTEGER REFERENCES users(id));
    -- migrate: down
    DROP TABLE posts;
    -- migrate: end
""")

INDEX_SQL = dedent("""\
    -- migrate: up
    CREATE INDEX idx_posts_user ON posts(user_id);
    -- migrate: down
    DROP INDEX idx_posts_user;
""")


@pytest.fixture
def registry():
    """A fresh, empty migration registry."""
    return MigrationRegistry()


@pytest.fixture
def migrations_dir(tmp_path):
    """Create a migrations directory with three revisions."""
    d = tmp_path / "migrations"
    d.mkdir()
    (d / "0001_create_users.sql").write_text(USERS_SQL)
    (d / "0002_create_posts.sql").write_text(POSTS_SQL)
    (d / "0010_index_posts.sql").write_text(INDEX_SQL)
    (d / "README.md").write_text("not a migration")
    return d
