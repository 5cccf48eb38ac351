#!/usr/bin/env python3
"""
Reviewer enumeration under the source's per-query result ceiling.

Goodreads truncates filtered review listings at a fixed number of results, no
matter how many people rated a book. To get closer to the full set of raters
we split the listing into disjoint sub-queries (one per star value) and, at
higher rigor levels, add keyword searches over review texts driven by a
dictionary file, bounded by a wall-clock budget.

Levels:
    1   star-filtered sub-queries (default)
    2   level 1 plus dictionary search if the book has more ratings than the
        trigger, for at most 2 minutes
    n   like 2 with an n-minute budget
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from .config import RigorSettings
from .constants import DEFAULT_DICTIONARY_PATH, DEFAULT_MAX_PAGES, GOODREADS_BASE_URL, REVIEWS_PATH, STAR_RATINGS
from .exceptions import PreconditionError
from .extract import PageSchema
from .fetcher import PageFetcher, PageRequest
from .models import Book, EntityKind, Review, ReviewEntry
from .progress import ProgressCallback, ProgressEvent
from .store import EntityStore
from .walker import PaginationWalker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnumerationPlan:
    """Sub-queries to issue for one book."""

    star_ratings: tuple[int, ...]
    use_dictionary: bool
    budget_seconds: float


def plan_enumeration(settings: RigorSettings, num_ratings: int | None) -> EnumerationPlan:
    """Decide which sub-queries a book needs at the configured rigor level."""
    use_dictionary = settings.uses_dictionary and (num_ratings or 0) > settings.dict_trigger_ratings
    return EnumerationPlan(
        star_ratings=STAR_RATINGS,
        use_dictionary=use_dictionary,
        budget_seconds=settings.dictionary_budget_seconds if use_dictionary else 0.0,
    )


def load_dictionary(path: Path | str) -> list[str]:
    """
    Read a newline-delimited word list.

    Blank lines and ``#`` comments are skipped and duplicates dropped,
    keeping the file's order.

    Raises:
        PreconditionError: If the file cannot be read
    """
    path = Path(path)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise PreconditionError(f"Cannot read dictionary file {path}: {e}") from e

    words: list[str] = []
    seen: set[str] = set()
    for line in lines:
        word = line.strip()
        if not word or word.startswith("#") or word in seen:
            continue
        seen.add(word)
        words.append(word)

    logger.debug(f"Loaded {len(words)} dictionary words from {path}")
    return words


def reviews_request(
    book_id: str,
    *,
    rating: int | None = None,
    search_text: str | None = None,
    base_url: str = GOODREADS_BASE_URL,
) -> PageRequest:
    params: dict[str, object] = {"page": 1}
    if rating is not None:
        params["rating"] = rating
    if search_text is not None:
        params["search_text"] = search_text
    return PageRequest.build(REVIEWS_PATH.format(book_id=book_id), params, base_url=base_url)


class ReviewerEnumerator:
    """Collects the distinct raters of a book, escalating by rigor level."""

    def __init__(
        self,
        fetcher: PageFetcher,
        store: EntityStore,
        settings: RigorSettings,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        base_url: str = GOODREADS_BASE_URL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.store = store
        self.settings = settings
        self.max_pages = max_pages
        self.base_url = base_url
        self._clock = clock

    async def read_reviews(
        self,
        book: Book,
        rigor_level: int | None = None,
        dictionary_path: Path | str = DEFAULT_DICTIONARY_PATH,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Review]:
        """
        Enumerate the raters of a book.

        Args:
            book: The book (its num_ratings decides whether dictionary search kicks in)
            rigor_level: Overrides the configured level; must be 1 or higher
            dictionary_path: Word list for dictionary search
            on_progress: Called after each newly found reviewer

        Returns:
            dict: Reviews keyed by reviewer (user) id, one per reviewer

        Raises:
            UnsupportedRigorError: For rigor levels below 1
            PreconditionError: If dictionary search is needed but the word list is unreadable
        """
        settings = self.settings if rigor_level is None else replace(self.settings, level=rigor_level)
        plan = plan_enumeration(settings, book.num_ratings)
        words = load_dictionary(dictionary_path) if plan.use_dictionary else []

        found: dict[str, Review] = {}
        start = self._clock()

        def collect(entry: ReviewEntry) -> None:
            self.store.upsert(EntityKind.USER, entry.user.id, entry.user)
            entry.review.book_id = book.id
            entry.review.author_id = book.author_id
            review = self.store.upsert(EntityKind.REVIEW, entry.review.id, entry.review)

            if entry.user.id in found:
                return
            found[entry.user.id] = review
            if on_progress is not None:
                total = max(book.num_ratings, len(found)) if book.num_ratings else None
                on_progress(ProgressEvent(len(found), total, self._clock() - start))

        for rating in plan.star_ratings:
            walker = PaginationWalker(
                self.fetcher,
                reviews_request(book.id, rating=rating, base_url=self.base_url),
                PageSchema.REVIEWS,
                max_pages=self.max_pages,
                clock=self._clock,
            )
            async for entry in walker:
                collect(entry)

            if walker.completed >= settings.result_cap:
                logger.warning(
                    f"Book {book.id}: {rating}-star listing returned {walker.completed} results, "
                    f"probably truncated at the {settings.result_cap} result cap"
                )

        logger.debug(f"Book {book.id}: {len(found)} reviewers from star-filtered listings")

        if plan.use_dictionary:
            await self._dictionary_pass(book, words, plan.budget_seconds, collect)

        return found

    async def _dictionary_pass(
        self,
        book: Book,
        words: list[str],
        budget_seconds: float,
        collect: Callable[[ReviewEntry], None],
    ) -> None:
        """Search review texts word by word until the budget elapses."""
        deadline = self._clock() + budget_seconds

        def budget_spent() -> bool:
            return self._clock() >= deadline

        searched = 0
        for word in words:
            if budget_spent():
                break

            walker = PaginationWalker(
                self.fetcher,
                reviews_request(book.id, search_text=word, base_url=self.base_url),
                PageSchema.REVIEWS,
                max_pages=self.max_pages,
                should_stop=budget_spent,
                clock=self._clock,
            )
            async for entry in walker:
                collect(entry)
            searched += 1

        if searched < len(words):
            logger.info(
                f"Book {book.id}: dictionary search budget of {budget_seconds / 60:.0f} min spent "
                f"after {searched}/{len(words)} words"
            )
