"""Upvote calculation for GitHub Project items.

Pages through a project's items, scores each open issue or pull request
and writes the score back to a number field.
"""

from ghupvotes.upvotes.api_logging import get_log_directory, is_api_logging_enabled
from ghupvotes.upvotes.models import (
    InnerCursorSet,
    ItemType,
    OuterCursor,
    ProjectItem,
    UnknownContentTypeError,
)
from ghupvotes.upvotes.rate_limit import RateLimitGovernor
from ghupvotes.upvotes.walker import ProjectItemWalker, WalkResult, WalkState

__all__ = [
    "InnerCursorSet",
    "ItemType",
    "OuterCursor",
    "ProjectItem",
    "ProjectItemWalker",
    "RateLimitGovernor",
    "UnknownContentTypeError",
    "WalkResult",
    "WalkState",
    "get_log_directory",
    "is_api_logging_enabled",
]
