"""Upvote calculation for a single project item.

An item's upvotes are:

- the comments and reactions on its issue or pull request, counted once;
- the reactions on every node of its paginated connections (comments,
  tracked issues, closing issue references), summed page by page;
- one point per timeline event, plus the reactions on a timeline comment or
  the comments and reactions of the issue a timeline event links to.

All connections of an item are paged in lock-step: while any of them has
another page, the item is re-queried with every live connection moved to its
end cursor.
"""

import logging
import threading

from ghupvotes.upvotes.github_api import GitHubClient, GraphQLError
from ghupvotes.upvotes.models import InnerCursorSet, ItemType, ProjectItem
from ghupvotes.upvotes.rate_limit import RateLimitGovernor

logger = logging.getLogger(__name__)


class AggregationCancelled(Exception):
    """Raised when a sibling task failed and this item's aggregation was abandoned."""


def should_skip(item: ProjectItem) -> bool:
    """Check whether an item is excluded from upvote calculation.

    Archived items, draft items and items whose issue or pull request is
    closed are skipped. Draft items are filtered before their content is
    resolved.
    """
    if item.is_archived or item.type is ItemType.DRAFT_ISSUE:
        return True
    return item.resolve().closed


class UpvoteAggregator:
    """Computes the total upvotes of one project item."""

    def __init__(self, client: GitHubClient, field_name: str, governor: RateLimitGovernor):
        self.client = client
        self.field_name = field_name
        self.governor = governor

    def score(self, item: ProjectItem, cancel: threading.Event | None = None) -> int:
        """Calculate the upvotes for an item fetched with its first page of connections.

        Args:
            item: Project item as returned in a page of the project's items
            cancel: Set by the orchestrator when a sibling item failed

        Returns:
            Total upvotes (never negative)

        Raises:
            AggregationCancelled: if ``cancel`` is set before a re-query
            GraphQLError: if a connection reports a next page without an end cursor
            UnknownContentTypeError: if the item is neither an Issue nor a PullRequest
        """
        content = item.resolve()
        upvotes = content.counts.upvotes()
        cursors = InnerCursorSet()
        pages = 1

        while True:
            for name, connection in content.connections().items():
                if not cursors.is_live(name):
                    continue
                upvotes += connection.upvotes()
                if connection.has_next_page() and connection.end_cursor() is None:
                    raise GraphQLError(
                        [f"{name} of project item {item.id} has a next page but no end cursor"]
                    )
                cursors.advance(name, connection)

            if not cursors.has_live():
                break

            if cancel is not None and cancel.is_set():
                raise AggregationCancelled(item.id)

            logger.debug(
                "Continuing to page %d of project item %s with cursors %s",
                pages + 1,
                item.id,
                cursors.variables(),
            )
            refreshed, rate_limit = self.client.get_project_item(
                item.id, self.field_name, cursors.variables()
            )
            self.governor.observe(rate_limit)
            content = refreshed.resolve()
            pages += 1

        logger.info("Upvotes calculated for %s: %d (%d page(s))", item.id, upvotes, pages)
        return upvotes
