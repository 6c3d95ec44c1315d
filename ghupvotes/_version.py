"""Version information for ghupvotes.

The version is statically defined here and should match pyproject.toml.
When running from a git checkout, the short commit SHA is appended so logs
from a scheduled run can be tied to the code that produced them.
"""

import subprocess
from functools import lru_cache

__version__ = "0.1.0"


@lru_cache(maxsize=1)
def get_git_sha() -> str | None:
    """Short SHA of the checked-out commit, or None outside a git checkout."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def get_version() -> str:
    return __version__


def get_full_version_string() -> str:
    """Human-readable version, like "ghupvotes 0.1.0 (abc1234)"."""
    sha = get_git_sha()
    if sha:
        return f"ghupvotes {__version__} ({sha})"
    return f"ghupvotes {__version__}"
