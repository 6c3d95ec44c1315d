"""Walks a project's item list, page by page.

The walker owns the outer cursor. It moves the cursor to a page's end only
once every item of that page was skipped or scored and written, so a run
halted by an error or by the rate limit resumes at the first page that did
not complete.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from ghupvotes.upvotes.aggregator import UpvoteAggregator, should_skip
from ghupvotes.upvotes.models import ItemResult, OuterCursor, ProjectItem
from ghupvotes.upvotes.mutator import WriteBackMutator
from ghupvotes.upvotes.orchestrator import ConcurrentPageProcessor, PageOutcome
from ghupvotes.upvotes.rate_limit import RateLimitGovernor

if TYPE_CHECKING:
    from ghupvotes.upvotes.github_api import GitHubClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class WalkState(Enum):
    """State of the walker. HALTED_* and DONE are terminal."""

    FETCHING = "fetching"
    PROCESSING_PAGE = "processing_page"
    HALTED_RATE_LIMIT = "halted_rate_limit"
    HALTED_ERROR = "halted_error"
    DONE = "done"


@dataclass
class WalkResult:
    """Result of a walk over the project's items."""

    state: WalkState
    cursor: str  # value to persist for the next run
    results: list[ItemResult] = field(default_factory=list)
    pages: int = 0
    error: Exception | None = None

    @property
    def success(self) -> bool:
        """True unless the walk halted on an error."""
        return self.state is not WalkState.HALTED_ERROR

    @property
    def scored(self) -> int:
        return sum(1 for r in self.results if not r.skipped)

    @property
    def written(self) -> int:
        return sum(1 for r in self.results if r.written)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)


class ProjectItemWalker:
    """Pages through a project's items, scoring and writing each one."""

    def __init__(
        self,
        client: "GitHubClient",
        project_id: str,
        field_name: str,
        aggregator: UpvoteAggregator,
        mutator: WriteBackMutator,
        governor: RateLimitGovernor,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        processor: ConcurrentPageProcessor | None = None,
    ):
        self.client = client
        self.project_id = project_id
        self.field_name = field_name
        self.aggregator = aggregator
        self.mutator = mutator
        self.governor = governor
        self.page_size = page_size
        self.processor = processor
        self.state = WalkState.FETCHING

    def run(self, start_cursor: str | None = None) -> WalkResult:
        """Walk the item list from ``start_cursor`` (None or "" for the first page).

        Query and mutation errors do not propagate: they end the walk in
        HALTED_ERROR with the cursor of the last completed page.
        """
        cursor = OuterCursor(start_cursor or None)
        results: list[ItemResult] = []
        pages = 0
        self.state = WalkState.FETCHING

        while True:
            if self.governor.should_halt(self.page_size):
                logger.info("Respecting rate limit, stopping before cursor %r", cursor.value)
                return self._finish(WalkState.HALTED_RATE_LIMIT, cursor, results, pages)

            try:
                page = self.client.get_project_items(
                    self.project_id, self.field_name, cursor.value, self.page_size
                )
                self.governor.observe(page.rate_limit)
                logger.debug(
                    "Fetched %d project item(s), end cursor %r, remaining budget %s",
                    len(page.items),
                    page.page_info.end_cursor,
                    self.governor.remaining,
                )

                self.state = WalkState.PROCESSING_PAGE
                outcome = self._process_page(page.items, results)
            except (RuntimeError, httpx.HTTPError) as e:
                logger.error("Halting at cursor %r: %s", cursor.value, e)
                return self._finish(WalkState.HALTED_ERROR, cursor, results, pages, error=e)

            results.extend(outcome.results)
            pages += 1

            if outcome.halted:
                return self._finish(WalkState.HALTED_RATE_LIMIT, cursor, results, pages)

            if not page.page_info.has_next_page:
                cursor.advance(None)
                return self._finish(WalkState.DONE, cursor, results, pages)

            cursor.advance(page.page_info.end_cursor)
            self.state = WalkState.FETCHING

    def _process_page(self, items: list[ProjectItem], results: list[ItemResult]) -> PageOutcome:
        if self.processor is not None:
            return self.processor.process(items, results)

        outcome = PageOutcome()
        try:
            for item in items:
                outcome.results.append(self._process_item(item))
        except (RuntimeError, httpx.HTTPError):
            # Items finished before the failure still belong in the results
            results.extend(outcome.results)
            raise
        return outcome

    def _process_item(self, item: ProjectItem) -> ItemResult:
        if should_skip(item):
            logger.info("Skipping inactive project item %s", item.id)
            return ItemResult(item_id=item.id, skipped=True)

        score = self.aggregator.score(item)
        written = self.mutator.apply(item, score)
        return ItemResult(item_id=item.id, score=score, written=written)

    def _finish(
        self,
        state: WalkState,
        cursor: OuterCursor,
        results: list[ItemResult],
        pages: int,
        error: Exception | None = None,
    ) -> WalkResult:
        self.state = state
        logger.info(
            "Upvote calculation %s after %d page(s), cursor %r",
            state.value,
            pages,
            cursor.persisted(),
        )
        return WalkResult(
            state=state,
            cursor=cursor.persisted(),
            results=results,
            pages=pages,
            error=error,
        )
