"""Exception hierarchy for schemabrew."""

from __future__ import annotations


class SchemabrewError(Exception):
    """Base class for every error raised by schemabrew."""


class CodecError(SchemabrewError):
    """A descriptor could not be compressed."""


class MalformedDescriptor(SchemabrewError, ValueError):
    """The descriptor bytes are not a valid gzip envelope."""


class ScanError(SchemabrewError):
    """The decompressed payload could not be read to the end."""


class RevisionError(SchemabrewError, ValueError):
    """No revision could be derived for a migration."""


class DuplicateRevision(SchemabrewError, ValueError):
    """A migration with the same revision is already registered."""

    def __init__(self, revision: int) -> None:
        super().__init__(f"Migration revision already registered: {revision}")
        self.revision = revision


class GenerateError(SchemabrewError):
    """Embedded migration code could not be generated."""
