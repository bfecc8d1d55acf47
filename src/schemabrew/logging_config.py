"""Log setup for the ``schemabrew`` command line.

Library modules only create ``logging.getLogger(__name__)`` loggers; the CLI
calls :func:`setup_logging` once.  ``LOG_FORMAT=json`` switches to one JSON
object per line, which is easier to read from CI job logs.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

DEV_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEV_DATEFMT = "%H:%M:%S"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Render a record as ``{"timestamp", "level", "logger", "message", ...}``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        print(f"WARNING: Invalid LOG_LEVEL '{level}', falling back to INFO", file=sys.stderr)
        return logging.INFO
    return resolved


def setup_logging(fmt: str | None = None, level: int | str | None = None) -> None:
    """Send all schemabrew logging to stderr.

    *fmt* is ``"dev"`` or ``"json"`` (default from ``LOG_FORMAT``); *level* is
    a name or number (default from ``LOG_LEVEL``, else INFO).
    """
    fmt = fmt or os.environ.get("LOG_FORMAT", "dev")

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt=DEV_DATEFMT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
