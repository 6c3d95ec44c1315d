"""Writes calculated upvotes back to the project's number field."""

import logging
import time
from typing import TYPE_CHECKING

from ghupvotes.upvotes.models import ProjectItem
from ghupvotes.upvotes.rate_limit import RateLimitGovernor

if TYPE_CHECKING:
    from ghupvotes.upvotes.github_api import GitHubClient

logger = logging.getLogger(__name__)

# Pause between mutations to stay under GitHub's secondary rate limits
# https://docs.github.com/en/graphql/overview/rate-limits-and-node-limits-for-the-graphql-api
DEFAULT_MUTATION_DELAY = 0.2


class WriteBackMutator:
    """Issues the field update for a scored item, unless running dry."""

    def __init__(
        self,
        client: "GitHubClient",
        project_id: str,
        field_id: str,
        governor: RateLimitGovernor,
        *,
        write: bool = False,
        delay: float = DEFAULT_MUTATION_DELAY,
    ):
        self.client = client
        self.project_id = project_id
        self.field_id = field_id
        self.governor = governor
        self.write = write
        self.delay = delay

    def apply(self, item: ProjectItem, score: int) -> bool:
        """Write an item's upvotes.

        Args:
            item: The scored project item
            score: Calculated upvotes

        Returns:
            True if the field was updated, False on a dry run
        """
        if score < 0:
            raise ValueError(f"Upvotes must not be negative, got {score} for {item.id}")

        if not self.write:
            logger.info(
                "Dry run: would set %s upvotes to %d (currently %s)",
                item.id,
                score,
                item.current_value,
            )
            return False

        logger.info(
            "Updating project item %s upvotes: %s -> %d", item.id, item.current_value, score
        )
        self.client.update_item_number(self.project_id, item.id, self.field_id, score)
        self.governor.record_mutation()

        if self.delay > 0:
            time.sleep(self.delay)

        return True
