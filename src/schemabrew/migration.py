"""Migrations and the loader that builds them from ``*.sql`` files.

Migration files are named with a numeric revision prefix, e.g.
``0001_create_users.sql``; the prefix orders the migrations.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from pathlib import Path

from schemabrew.descriptor import Descriptor
from schemabrew.errors import RevisionError

logger = logging.getLogger(__name__)

_REVISION_RE = re.compile(r"^(\d+)")


@dataclass(frozen=True)
class Migration:
    """A descriptor together with the revision that orders it.

    Frozen, so a registered migration cannot change its revision.
    """

    revision: int
    descriptor: Descriptor = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.descriptor, Descriptor):
            object.__setattr__(self, "descriptor", Descriptor(self.descriptor))

    @cached_property
    def package(self) -> str:
        """Package named by the migration's ``-- package:`` directive (cached)."""
        return self.descriptor.package()

    @property
    def name(self) -> str:
        return self.descriptor.info()[0]

    @property
    def modified(self) -> datetime:
        return self.descriptor.info()[1]

    def up(self) -> str:
        return self.descriptor.up()

    def down(self) -> str:
        return self.descriptor.down()


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


def revision_from_name(name: str) -> int:
    """Return the revision encoded as the leading digits of a file name.

    Raises
    ------
    RevisionError
        If the base name does not start with a number.
    """
    match = _REVISION_RE.match(Path(name).name)
    if match is None:
        raise RevisionError(f"Migration name has no revision prefix: {name!r}")
    return int(match.group(1))


def open_migration(path: Path | str) -> Migration:
    """Read a migration file and compress it into a :class:`Migration`."""
    path = Path(path)
    revision = revision_from_name(path.name)
    with open(path, "rb") as f:
        descriptor = Descriptor.create(f, path.name)
    logger.debug("Loaded migration %d from %s", revision, path)
    return Migration(revision=revision, descriptor=descriptor)


def load_migrations(directory: Path | str) -> list[Migration]:
    """Load every ``*.sql`` file in *directory*, sorted by revision.

    Raises
    ------
    FileNotFoundError
        If *directory* does not exist or contains no migration files.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Migrations directory not found: {directory}")

    paths = sorted(directory.glob("*.sql"))
    if not paths:
        raise FileNotFoundError(f"No migration files found in {directory}")

    migrations = [open_migration(path) for path in paths]
    migrations.sort(key=lambda m: m.revision)
    return migrations
