"""Persisting the resumption cursor for the next run.

The cursor is exposed as a ``cursor=<value>`` line, the format GitHub
Actions reads from the file named by GITHUB_OUTPUT. An empty value means the
item list was exhausted and the next run starts from the top.
"""

import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

CURSOR_OUTPUT_KEY = "cursor"


def format_cursor_output(cursor: str) -> str:
    """Format the cursor as a single key=value line."""
    if "\n" in cursor or "\r" in cursor:
        raise ValueError(f"Cursor must be a single line: {cursor!r}")
    return f"{CURSOR_OUTPUT_KEY}={cursor}\n"


def write_cursor_output(cursor: str, path: Path | None = None) -> None:
    """Append the cursor line to ``path``, or print it when no path is given."""
    line = format_cursor_output(cursor)

    if path is None:
        sys.stdout.write(line)
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a") as f:
        f.write(line)
    logger.debug("Wrote cursor %r to %s", cursor, path)
