"""Concurrent processing of one page of project items.

Each item of a page is scored on a worker thread. Scores are pushed onto a
bounded queue drained by a single writer thread, so mutations never run
concurrently. The first failure cancels the remaining items of the page and
is re-raised to the walker once every thread has finished.
"""

import logging
import queue
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from ghupvotes.upvotes.aggregator import AggregationCancelled, UpvoteAggregator, should_skip
from ghupvotes.upvotes.models import ItemResult, ProjectItem
from ghupvotes.upvotes.mutator import WriteBackMutator
from ghupvotes.upvotes.rate_limit import RateLimitGovernor

logger = logging.getLogger(__name__)

# Sentinel closing the writer's queue
_DONE = object()


@dataclass
class PageOutcome:
    """Results of processing a page, and whether the budget cut it short."""

    results: list[ItemResult] = field(default_factory=list)
    halted: bool = False


class ConcurrentPageProcessor:
    """Scores a page's items concurrently and writes them one at a time."""

    def __init__(
        self,
        aggregator: UpvoteAggregator,
        mutator: WriteBackMutator,
        governor: RateLimitGovernor,
        max_workers: int = 4,
        queue_size: int | None = None,
    ):
        self.aggregator = aggregator
        self.mutator = mutator
        self.governor = governor
        self.max_workers = max_workers
        self.queue_size = queue_size or max_workers

    def process(
        self, items: list[ProjectItem], results: list[ItemResult] | None = None
    ) -> PageOutcome:
        """Process every item of a page.

        Args:
            items: Project items of one page
            results: Receives the results of items finished before a failure

        Returns:
            PageOutcome; ``halted`` is set when the rate limit stopped admission

        Raises:
            The first error raised while scoring or writing an item
        """
        outcome = PageOutcome()
        cancel = threading.Event()
        scores: queue.Queue = queue.Queue(maxsize=self.queue_size)
        lock = threading.Lock()
        writer_errors: list[Exception] = []

        writer = threading.Thread(
            target=self._write_scores,
            args=(scores, cancel, outcome, lock, writer_errors),
            name="upvotes-writer",
            daemon=True,
        )
        writer.start()

        futures: dict[Future, ProjectItem] = {}
        failed = False
        try:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="upvotes-worker"
            ) as executor:
                for item in items:
                    if cancel.is_set():
                        break

                    if should_skip(item):
                        logger.info("Skipping inactive project item %s", item.id)
                        with lock:
                            outcome.results.append(ItemResult(item_id=item.id, skipped=True))
                        continue

                    in_flight = sum(1 for f in futures if not f.done()) + scores.qsize()
                    if self.governor.should_halt(in_flight):
                        logger.info("Nearing rate limit, no further project items admitted")
                        outcome.halted = True
                        break

                    futures[executor.submit(self._score, item, cancel, scores)] = item

                if futures:
                    done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
                    if any(self._failure(f) for f in done):
                        cancel.set()
                        for future in not_done:
                            future.cancel()
        except BaseException:
            failed = True
            cancel.set()
            raise
        finally:
            scores.put(_DONE)
            writer.join()
            if failed and results is not None:
                results.extend(outcome.results)

        errors = [e for e in (self._failure(f) for f in futures) if e is not None]
        if errors or writer_errors:
            if results is not None:
                results.extend(outcome.results)
            raise (errors + writer_errors)[0]

        return outcome

    def _score(self, item: ProjectItem, cancel: threading.Event, scores: queue.Queue) -> None:
        if cancel.is_set():
            raise AggregationCancelled(item.id)
        score = self.aggregator.score(item, cancel=cancel)
        scores.put((item, score))

    @staticmethod
    def _failure(future: Future) -> BaseException | None:
        """The error a finished task failed with, ignoring cancellations."""
        if future.cancelled() or not future.done():
            return None
        exc = future.exception()
        if isinstance(exc, AggregationCancelled):
            return None
        return exc

    def _write_scores(
        self,
        scores: queue.Queue,
        cancel: threading.Event,
        outcome: PageOutcome,
        lock: threading.Lock,
        errors: list[Exception],
    ) -> None:
        # Keeps draining after a failure so no worker blocks on a full queue
        while True:
            entry = scores.get()
            if entry is _DONE:
                return

            item, score = entry
            if cancel.is_set():
                logger.debug("Discarding upvotes for %s after cancellation", item.id)
                continue

            try:
                written = self.mutator.apply(item, score)
            except Exception as e:
                logger.error("Failed to update project item %s: %s", item.id, e)
                errors.append(e)
                cancel.set()
                continue

            with lock:
                outcome.results.append(ItemResult(item_id=item.id, score=score, written=written))
