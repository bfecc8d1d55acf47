"""Load project configuration from ``schemabrew.yaml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "schemabrew.yaml"


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _get_required(data: dict, key: str, context: str = "config") -> Any:
    """Get a required key from a dict, raising ValueError with a clear message."""
    keys = key.split(".")
    current = data
    for k in keys:
        if not isinstance(current, dict) or k not in current:
            raise ValueError(f"Missing required key '{key}' in {context}")
        current = current[k]
    return current


def _resolve(base: Path, value: str | None) -> str | None:
    """Expand ``~`` and resolve *value* relative to the config directory."""
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base / path
    return str(path)


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


@dataclass
class ProjectConfig:
    """Settings shared by the ``generate``, ``list`` and ``migrate`` commands."""

    migrations_dir: str
    output: str | None = None
    package_name: str = ""
    db_path: str | None = None


def load_config(path: Path) -> ProjectConfig:
    """Load project configuration from a YAML file.

    Parameters
    ----------
    path:
        Path to the project YAML file (e.g. ``schemabrew.yaml``).

    Returns
    -------
    ProjectConfig
        Parsed configuration with paths resolved against the file's directory.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If a required key is missing or the file is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must be a mapping, got {type(data).__name__}")

    base = path.resolve().parent
    generate_raw = data.get("generate") or {}
    database_raw = data.get("database") or {}

    migrations_dir = _get_required(data, "migrations.dir", path.name)
    if not migrations_dir:
        raise ValueError(f"Config 'migrations.dir' must not be empty in {path.name}")

    config = ProjectConfig(
        migrations_dir=_resolve(base, migrations_dir),
        output=_resolve(base, generate_raw.get("output")),
        package_name=generate_raw.get("package") or "",
        db_path=_resolve(base, database_raw.get("path")),
    )
    logger.debug("Loaded config from %s", path)
    return config
