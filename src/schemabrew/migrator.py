"""Apply registered migrations to a SQLite database."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import aiosqlite

from schemabrew.registry import MigrationRegistry, default_registry

logger = logging.getLogger(__name__)


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    revision INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT NOT NULL
);
"""


def _utcnow() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Migrator:
    """Run the up and down sections of registered migrations.

    The ``schema_migrations`` table records which revisions have been applied
    so they are never re-run.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Use ``":memory:"`` for tests.
    registry:
        Registry providing the migrations (default: the process-wide one).
    """

    def __init__(self, db_path: str, registry: MigrationRegistry | None = None) -> None:
        self.db_path = db_path
        self.registry = registry if registry is not None else default_registry
        self._conn: aiosqlite.Connection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the connection and create the bookkeeping table."""
        if self.db_path != ":memory:":
            from pathlib import Path
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        # Autocommit; executescript() manages its own transactions.
        self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.executescript(_SCHEMA_SQL)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> Migrator:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Migrator not initialized. Call initialize() first.")
        return self._conn

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_current_revision(self) -> int | None:
        """Return the highest revision that has been applied, or None if none has."""
        cursor = await self.connection.execute(
            "SELECT MAX(revision) AS revision FROM schema_migrations"
        )
        row = await cursor.fetchone()
        return row["revision"] if row else None

    async def get_applied(self) -> list[dict]:
        """Return the applied migrations in ascending revision order."""
        cursor = await self.connection.execute(
            "SELECT revision, name, applied_at FROM schema_migrations ORDER BY revision"
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # ------------------------------------------------------------------
    # Apply / rollback
    # ------------------------------------------------------------------

    async def apply_pending(self) -> list[str]:
        """Apply every registered migration newer than the current revision.

        Returns
        -------
        list[str]
            Names of the migrations that were applied.
        """
        conn = self.connection
        current = await self.get_current_revision()
        applied: list[str] = []

        for migration in self.registry.migrations:
            if current is not None and migration.revision <= current:
                continue
            name = migration.name
            logger.info("Applying migration %d: %s", migration.revision, name)
            await conn.executescript(migration.up())
            await conn.execute(
                "INSERT INTO schema_migrations (revision, name, applied_at) "
                "VALUES (?, ?, ?)",
                (migration.revision, name, _utcnow()),
            )
            applied.append(name)

        return applied

    async def rollback(self, target: int | None = None) -> list[str]:
        """Revert applied migrations with a revision above *target*, newest first.

        With no *target* every applied migration is reverted.

        Returns
        -------
        list[str]
            Names of the migrations that were rolled back.
        """
        conn = self.connection
        reverted: list[str] = []

        for row in reversed(await self.get_applied()):
            revision = row["revision"]
            if target is not None and revision <= target:
                break
            migration = self.registry.get(revision)
            if migration is None:
                logger.warning(
                    "Applied migration %d (%s) is not registered; stopping rollback",
                    revision, row["name"],
                )
                break
            logger.info("Rolling back migration %d: %s", revision, row["name"])
            await conn.executescript(migration.down())
            await conn.execute(
                "DELETE FROM schema_migrations WHERE revision = ?", (revision,)
            )
            reverted.append(row["name"])

        return reverted
