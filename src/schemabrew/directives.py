"""Line-oriented directives embedded in migration SQL comments.

Two directives are recognised, one per physical line, case-insensitive and
tolerant of surrounding whitespace::

    -- package: accounts
    -- migrate: up | down | end

``-- migrate:`` lines split a file into regions.  A region runs from its
directive to the next ``-- migrate:`` line or the end of the file.
"""

from __future__ import annotations

import re
from typing import Iterable

PACKAGE_RE = re.compile(r"^\s*--\s+package:\s+([A-Za-z0-9_]+)\s*$", re.IGNORECASE)
MIGRATE_RE = re.compile(r"^\s*--\s+migrate:\s+(up|down|end)\s*$", re.IGNORECASE)

UP = "up"
DOWN = "down"
END = "end"


def find_package(lines: Iterable[str]) -> str:
    """Return the identifier of the first ``-- package:`` line, or ``""``."""
    for line in lines:
        match = PACKAGE_RE.match(line)
        if match:
            return match.group(1)
    return ""


def read_region(lines: Iterable[str], target: str) -> str:
    """Collect every line that falls inside a *target* region.

    Directive lines are never emitted.  An ``end`` directive, or any directive
    other than *target*, closes the current region; the end of input closes it
    too.  When *target* appears more than once, each region is appended to the
    same buffer, so the result holds all of them in document order.
    """
    target = target.lower()
    out: list[str] = []
    active = False

    for line in lines:
        match = MIGRATE_RE.match(line)
        if match:
            keyword = match.group(1).lower()
            active = keyword != END and keyword == target
            continue
        if active:
            out.append(line)
            out.append("\n")

    return "".join(out)
