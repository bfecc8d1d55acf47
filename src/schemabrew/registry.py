"""Ordered registry of the migrations known to an application.

Usage::

    registry = MigrationRegistry()
    registry.register(open_migration("migrations/0001_users.sql"))

    for migration in registry.migrations:
        ...

Generated modules register into :data:`default_registry` unless they are
handed an explicit registry.
"""

from __future__ import annotations

import bisect
import logging
import threading
from operator import attrgetter
from typing import Iterator

from schemabrew.descriptor import Descriptor
from schemabrew.errors import DuplicateRevision
from schemabrew.migration import Migration, revision_from_name

logger = logging.getLogger(__name__)

_revision = attrgetter("revision")


class MigrationRegistry:
    """Migrations kept unique by revision and sorted ascending.

    ``register``, ``register_descriptor`` and ``reset`` hold one lock so that
    registration from several threads is safe.  Readers get a snapshot.
    """

    def __init__(self) -> None:
        self._migrations: list[Migration] = []
        self._lock = threading.Lock()

    @property
    def migrations(self) -> tuple[Migration, ...]:
        """Registered migrations in ascending revision order."""
        return tuple(self._migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self.migrations)

    def get(self, revision: int) -> Migration | None:
        """Return the migration registered for *revision*, if any."""
        migrations = self._migrations
        i = bisect.bisect_left(migrations, revision, key=_revision)
        if i < len(migrations) and migrations[i].revision == revision:
            return migrations[i]
        return None

    def register(self, migration: Migration) -> Migration:
        """Insert *migration* at its sorted position.

        Raises
        ------
        DuplicateRevision
            If a migration with the same revision is already registered.  The
            registry is left unchanged.
        """
        with self._lock:
            i = bisect.bisect_left(self._migrations, migration.revision, key=_revision)
            if i < len(self._migrations) and self._migrations[i].revision == migration.revision:
                raise DuplicateRevision(migration.revision)
            self._migrations.insert(i, migration)
        logger.debug("Registered migration %d", migration.revision)
        return migration

    def register_descriptor(self, raw: bytes, revision: int | None = None) -> Migration:
        """Register compressed descriptor bytes, typically from generated code.

        Generated modules always pass *revision*.  Without it, the revision is
        read from the descriptor's file name the same way the loader reads it
        from the migration file.
        """
        descriptor = Descriptor(raw)
        if revision is None:
            name, _ = descriptor.info()
            revision = revision_from_name(name)
        return self.register(Migration(revision=revision, descriptor=descriptor))

    def reset(self) -> None:
        """Remove every registered migration."""
        with self._lock:
            self._migrations.clear()


# ---------------------------------------------------------------------------
# Process-wide default registry
# ---------------------------------------------------------------------------

default_registry = MigrationRegistry()


def register(migration: Migration) -> Migration:
    return default_registry.register(migration)


def register_descriptor(raw: bytes, revision: int | None = None) -> Migration:
    return default_registry.register_descriptor(raw, revision)


def reset() -> None:
    default_registry.reset()


def migrations() -> tuple[Migration, ...]:
    return default_registry.migrations
