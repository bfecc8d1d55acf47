"""Generate a Python module that embeds compressed migrations.

The generated module holds one ``REVISION_<n>`` bytes literal per migration
and a ``register(registry=None)`` function that adds them to a
:class:`~schemabrew.registry.MigrationRegistry`::

    from app import migrations_data
    migrations_data.register(registry)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from schemabrew.descriptor import PYTHON_BYTES
from schemabrew.errors import GenerateError
from schemabrew.migration import Migration, load_migrations
from schemabrew.registry import MigrationRegistry

logger = logging.getLogger(__name__)


_HEADER = '''\
# Code generated by schemabrew. DO NOT EDIT.
# source: {source}

"""Embedded schema migrations for the ``{package}`` package."""

from schemabrew import registry as _registry

PACKAGE = {package!r}


def register(registry=None):
    """Register the embedded migrations (default: the process-wide registry)."""
    if registry is None:
        registry = _registry.default_registry
'''


def generate(
    migrations_dir: Path | str,
    outpath: Path | str,
    package_name: str = "",
) -> Path:
    """Write a module embedding every migration in *migrations_dir*.

    Parameters
    ----------
    migrations_dir:
        Directory holding the ``*.sql`` migration files.
    outpath:
        Path of the Python module to write.
    package_name:
        Package the migrations belong to.  When empty it is taken from the
        ``-- package:`` directives, or else from the output directory name.

    Returns
    -------
    Path
        The path that was written.

    Raises
    ------
    DuplicateRevision
        If two migration files share a revision.
    GenerateError
        If the package name cannot be determined or the module is invalid.
    """
    outpath = Path(outpath)

    # Registering into a scratch registry enforces unique, ordered revisions.
    registry = MigrationRegistry()
    for migration in load_migrations(migrations_dir):
        registry.register(migration)
    migrations = registry.migrations

    if not package_name:
        package_name = determine_package(migrations, outpath)

    source = render(migrations, str(migrations_dir), package_name)
    try:
        compile(source, str(outpath), "exec")
    except SyntaxError as exc:
        raise GenerateError(f"Generated code for {outpath} is invalid: {exc}") from exc

    outpath.parent.mkdir(parents=True, exist_ok=True)
    outpath.write_text(source, encoding="utf-8")
    logger.info(
        "Generated %s with %d migrations for package %s",
        outpath, len(migrations), package_name,
    )
    return outpath


def render(migrations: tuple[Migration, ...] | list[Migration], source: str, package_name: str) -> str:
    """Return the module source embedding *migrations* in the given order."""
    lines = [_HEADER.format(source=source, package=package_name)]
    for m in migrations:
        lines.append(f"    registry.register_descriptor(REVISION_{m.revision}, revision={m.revision})\n")
    for m in migrations:
        lines.append(f"\n\nREVISION_{m.revision} = {m.descriptor.literal(PYTHON_BYTES)}\n")
    return "".join(lines)


def determine_package(migrations: tuple[Migration, ...] | list[Migration], outpath: Path) -> str:
    """Work out the package name when none was given explicitly."""
    names = {m.package for m in migrations if m.package}

    if len(names) > 1:
        raise GenerateError(
            f"Discovered {len(names)} unique package names, please specify package name"
        )
    if names:
        return names.pop()

    parent = outpath.parent
    if str(parent) != ".":
        if parent.name:
            return parent.name
        raise GenerateError(f"Could not determine package name from {str(outpath)!r} outpath")
    cwd_name = Path(os.getcwd()).name
    if cwd_name:
        return cwd_name

    raise GenerateError(
        f"Could not determine package name from {len(migrations)} migrations and {str(outpath)!r} outpath"
    )
