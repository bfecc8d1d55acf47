"""schemabrew command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from schemabrew.config_loader import DEFAULT_CONFIG, ProjectConfig, load_config
from schemabrew.errors import SchemabrewError
from schemabrew.generator import generate
from schemabrew.logging_config import setup_logging
from schemabrew.migration import load_migrations
from schemabrew.migrator import Migrator
from schemabrew.registry import MigrationRegistry

logger = logging.getLogger(__name__)


_EXAMPLE_MIGRATION = """\
-- package: {package}

-- migrate: up
CREATE TABLE IF NOT EXISTS example (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- migrate: down
DROP TABLE IF EXISTS example;
"""


def _load_project_config(args) -> ProjectConfig | None:
    """Load ``--config``, or ``schemabrew.yaml`` in the working directory if present."""
    config_path = getattr(args, "config", None)
    if config_path:
        return load_config(Path(config_path))
    default = Path(DEFAULT_CONFIG)
    if default.exists():
        return load_config(default)
    return None


def _settings(args) -> dict:
    """Merge command-line values over the project configuration."""
    cfg = _load_project_config(args)
    return {
        "migrations_dir": getattr(args, "dir", None) or (cfg.migrations_dir if cfg else None) or "migrations",
        "output": getattr(args, "output", None) or (cfg.output if cfg else None),
        "package_name": getattr(args, "package", None) or (cfg.package_name if cfg else ""),
        "db_path": getattr(args, "db", None) or (cfg.db_path if cfg else None),
    }


def _load_registry(migrations_dir: str) -> MigrationRegistry:
    registry = MigrationRegistry()
    for migration in load_migrations(migrations_dir):
        registry.register(migration)
    return registry


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_init(args):
    """Initialize a schemabrew project."""
    project_dir = Path(args.dir).resolve()
    package = args.package or project_dir.name

    print(f"Initializing schemabrew project: {package}")
    print(f"Directory: {project_dir}\n")

    migrations_dir = project_dir / "migrations"
    migrations_dir.mkdir(parents=True, exist_ok=True)
    print("  Created migrations/")

    config_yaml = project_dir / DEFAULT_CONFIG
    if not config_yaml.exists():
        config_yaml.write_text(
            'migrations:\n  dir: "migrations"\n\n'
            f'generate:\n  output: "{package}/migrations_data.py"\n'
            f'  package: "{package}"\n\n'
            f'database:\n  path: "data/{package}.db"\n'
        )
        print(f"  Created {DEFAULT_CONFIG}")

    if not list(migrations_dir.glob("*.sql")):
        (migrations_dir / "0001_initial.sql").write_text(
            _EXAMPLE_MIGRATION.format(package=package)
        )
        print("  Created migrations/0001_initial.sql")

    print("\nProject initialized! Next steps:")
    print("  1. Add migrations as migrations/<revision>_<name>.sql")
    print("  2. Run: schemabrew generate")


def _cmd_generate(args):
    """Embed the migrations directory into a Python module."""
    settings = _settings(args)
    if not settings["output"]:
        raise ValueError("No output path given (use --output or generate.output in config)")
    path = generate(settings["migrations_dir"], settings["output"], settings["package_name"])
    print(f"Wrote {path}")


def _cmd_list(args):
    """Print the migrations found in the migrations directory."""
    settings = _settings(args)
    migrations = load_migrations(settings["migrations_dir"])
    print(f"{'REVISION':>8}  {'PACKAGE':<16} {'MODIFIED':<20} NAME")
    for m in migrations:
        modified = m.modified.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{m.revision:>8}  {m.package or '-':<16} {modified:<20} {m.name}")


async def _run_migrator(
    db_path: str, registry: MigrationRegistry, rollback: bool, target: int | None,
) -> list[str]:
    async with Migrator(db_path, registry) as migrator:
        if rollback:
            return await migrator.rollback(target)
        return await migrator.apply_pending()


def _cmd_migrate(args, rollback: bool = False):
    """Apply (or roll back) migrations against a SQLite database."""
    settings = _settings(args)
    if not settings["db_path"]:
        raise ValueError("No database given (use --db or database.path in config)")
    registry = _load_registry(settings["migrations_dir"])
    target = args.to if rollback else None
    names = asyncio.run(_run_migrator(settings["db_path"], registry, rollback, target))

    verb = "Rolled back" if rollback else "Applied"
    if names:
        print(f"{verb} {len(names)} migration(s):")
        for name in names:
            print(f"  {name}")
    else:
        print("Nothing to do.")


def _add_project_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help=f"Config file (default: ./{DEFAULT_CONFIG})")
    parser.add_argument("--dir", default=None, help="Migrations directory")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="schemabrew", description="schemabrew: embedded SQL schema migrations")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = sub.add_parser("init", help="Initialize a new project")
    init_parser.add_argument("--dir", default=".", help="Project directory")
    init_parser.add_argument("--package", default=None, help="Package name")

    # generate
    generate_parser = sub.add_parser("generate", help="Embed migrations into a Python module")
    _add_project_args(generate_parser)
    generate_parser.add_argument("--output", "-o", default=None, help="Module to write")
    generate_parser.add_argument("--package", "-p", default=None, help="Package name")

    # list
    list_parser = sub.add_parser("list", help="List migrations")
    _add_project_args(list_parser)

    # migrate
    migrate_parser = sub.add_parser("migrate", help="Apply pending migrations")
    _add_project_args(migrate_parser)
    migrate_parser.add_argument("--db", default=None, help="SQLite database path")

    # rollback
    rollback_parser = sub.add_parser("rollback", help="Roll back applied migrations")
    _add_project_args(rollback_parser)
    rollback_parser.add_argument("--db", default=None, help="SQLite database path")
    rollback_parser.add_argument("--to", type=int, default=None,
                                 help="Revision to roll back to (default: all)")

    return parser


def cli_main(argv: list[str] | None = None):
    # Load .env before anything else so LOG_LEVEL / LOG_FORMAT apply
    load_dotenv()
    setup_logging()

    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "init": _cmd_init,
        "generate": _cmd_generate,
        "list": _cmd_list,
        "migrate": _cmd_migrate,
        "rollback": lambda a: _cmd_migrate(a, rollback=True),
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        commands[args.command](args)
    except (SchemabrewError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(cli_main())
