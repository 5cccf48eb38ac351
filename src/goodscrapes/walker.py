"""
Lazy traversal of paginated Goodreads listings.
"""

import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from typing import Any

from .constants import DEFAULT_MAX_PAGES
from .extract import PageSchema, extract
from .fetcher import PageFetcher, PageRequest
from .models import Author
from .progress import ProgressCallback, ProgressEvent

logger = logging.getLogger(__name__)


class PaginationWalker:
    """
    Async iterable over the records of a paginated listing.

    Each ``async for`` starts again from the first request. Pages are fetched
    one at a time and only when the consumer asks for more records; the page
    cache, not the walker, is what makes a restarted walk cheap.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        request: PageRequest,
        schema: PageSchema,
        *,
        limit: int | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        on_progress: ProgressCallback | None = None,
        should_stop: Callable[[], bool] | None = None,
        extract_context: dict[str, Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            fetcher: Page source
            request: First page of the listing
            schema: Extractor to apply to every page
            limit: Stop after this many records
            max_pages: Hard bound on fetched pages
            on_progress: Called after each record with a ProgressEvent
            should_stop: Checked before each page fetch; True ends the walk
            extract_context: Extra keyword arguments for the extractor
            clock: Time source for elapsed seconds
        """
        self.fetcher = fetcher
        self.request = request
        self.schema = PageSchema(schema)
        self.limit = limit
        self.max_pages = max_pages
        self.on_progress = on_progress
        self.should_stop = should_stop
        self.extract_context = extract_context or {}
        self._clock = clock

        # State of the most recent walk
        self.pages_fetched = 0
        self.completed = 0
        self.owner: Author | None = None
        self.stop_reason: str | None = None

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._walk()

    def _total_estimate(self, page_total: int | None, previous: int | None) -> int | None:
        estimate = page_total
        if estimate is not None and self.limit is not None:
            estimate = min(estimate, self.limit)
        if estimate is not None:
            estimate = max(estimate, self.completed)
        if previous is not None and (estimate is None or estimate < previous):
            return previous
        return estimate

    async def _walk(self) -> AsyncGenerator[Any, None]:
        start = self._clock()
        self.pages_fetched = 0
        self.completed = 0
        self.owner = None
        self.stop_reason = None

        if self.limit is not None and self.limit <= 0:
            self.stop_reason = "limit"
            return

        current = self.request
        total: int | None = None

        while True:
            if self.pages_fetched >= self.max_pages:
                logger.warning(
                    f"Stopping {self.schema} walk at {current.path} after {self.max_pages} pages (page bound reached)"
                )
                self.stop_reason = "max_pages"
                return

            if self.should_stop is not None and self.should_stop():
                logger.debug(f"Stop requested before page {current.page} of {current.path}")
                self.stop_reason = "stopped"
                return

            raw = await self.fetcher.fetch_page(current)
            self.pages_fetched += 1
            page = extract(raw, self.schema, **self.extract_context)
            logger.debug(f"Page {current.page} of {current.path}: {len(page.records)} records, next={page.has_next}")

            if page.owner is not None:
                self.owner = page.owner

            if not page.records:
                self.stop_reason = "empty_page"
                return

            for record in page.records:
                if self.limit is not None and self.completed >= self.limit:
                    self.stop_reason = "limit"
                    return

                self.completed += 1
                total = self._total_estimate(page.total, total)
                yield record

                if self.on_progress is not None:
                    self.on_progress(ProgressEvent(self.completed, total, self._clock() - start))

            if self.limit is not None and self.completed >= self.limit:
                self.stop_reason = "limit"
                return

            if not page.has_next:
                self.stop_reason = "last_page"
                return

            current = current.with_page(current.page + 1)
