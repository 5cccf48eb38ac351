#!/usr/bin/env python3
"""
Likeminded: find members who read the same authors as a given user.

Loads the authors on the user's shelves, all books of those authors, the
raters of each book, and finally the profiles of the members sharing enough
authors, which are then ranked by match score.
"""

import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeAlias

from .common import format_duration, pluralize
from .constants import DEFAULT_DICTIONARY_PATH, DEFAULT_MAX_AUTHOR_BOOKS, DEFAULT_MIN_COMMON_PERCENT
from .exceptions import NoAuthorsError
from .models import Author, Book
from .progress import ProgressCallback, ProgressMeter
from .ranking import Match, build_match, rank_matches, select_candidates
from .scraper import GoodreadsScraper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikemindedSettings:
    min_common_percent: int = DEFAULT_MIN_COMMON_PERCENT
    max_author_books: int = DEFAULT_MAX_AUTHOR_BOOKS
    rigor_level: int | None = None
    dictionary_path: Path | str = DEFAULT_DICTIONARY_PATH

    def __post_init__(self):
        if not 0 <= self.min_common_percent <= 100:
            raise ValueError(f"min_common_percent must be between 0 and 100, got {self.min_common_percent}")


@dataclass
class LikemindedReport:
    user_id: str
    shelves: list[str]
    authors: dict[str, Author]
    matches: list[Match] = field(default_factory=list)
    candidates_considered: int = 0
    excluded_members: int = 0


MeterFactory: TypeAlias = Callable[[str], ProgressCallback | None]


class LikemindedFinder:
    """Runs the full likeminded pipeline on top of a GoodreadsScraper."""

    def __init__(
        self,
        scraper: GoodreadsScraper,
        settings: LikemindedSettings | None = None,
        meter_factory: MeterFactory = ProgressMeter,
    ):
        self.scraper = scraper
        self.settings = settings or LikemindedSettings()
        self.meter_factory = meter_factory

    async def run(self, user_id: str, shelves: list[str] | None = None) -> LikemindedReport:
        """
        Find and rank members similar to ``user_id``.

        Raises:
            NoAuthorsError: If the shelves contain no authors
        """
        start = time.monotonic()
        user_id = str(user_id)
        authors = await self.scraper.read_authors(user_id, shelves, on_progress=self.meter_factory("authors"))
        if not authors:
            raise NoAuthorsError(
                f"No authors found on the shelves of user {user_id}. "
                "Check the user number and shelf names, or use a cookie for private accounts."
            )

        books = await self._load_books(authors)
        authors_read_by = await self._load_raters(books)

        candidates = select_candidates(
            authors_read_by, len(authors), self.settings.min_common_percent, exclude_user_id=user_id
        )
        logger.info(
            f"Keeping {len(candidates)} of {len(authors_read_by)} members who read at least "
            f"{self.settings.min_common_percent}% of {len(authors)} authors"
        )

        report = LikemindedReport(
            user_id=user_id,
            shelves=list(shelves or []),
            authors=authors,
            candidates_considered=len(candidates),
        )
        matches: list[Match] = []
        for member_id, author_ids in candidates.items():
            member = await self.scraper.read_user(member_id)
            match = build_match(member, author_ids, len(authors))
            if match is None:
                logger.debug(f"Excluding member {member_id}: private account or empty library")
                report.excluded_members += 1
                continue
            matches.append(match)

        report.matches = rank_matches(matches)
        logger.info(
            f"Ranked {len(report.matches)} {pluralize(len(report.matches), 'member')} "
            f"in {format_duration(time.monotonic() - start)}"
        )
        return report

    async def _load_books(self, authors: dict[str, Author]) -> dict[str, Book]:
        books: dict[str, Book] = {}
        for done, author_id in enumerate(list(authors), start=1):
            author_books = await self.scraper.read_author_books(
                author_id,
                limit=self.settings.max_author_books,
                on_progress=self.meter_factory("books"),
            )
            books.update(author_books)
            logger.info(f"[{done}/{len(authors)}] author {author_id}: {len(author_books)} books")
        return books

    async def _load_raters(self, books: dict[str, Book]) -> dict[str, set[str]]:
        """Map each rater to the set of author ids they have read."""
        authors_read_by: dict[str, set[str]] = defaultdict(set)
        for done, book in enumerate(list(books.values()), start=1):
            reviews = await self.scraper.read_reviews(
                book,
                rigor_level=self.settings.rigor_level,
                dictionary_path=self.settings.dictionary_path,
                on_progress=self.meter_factory("members"),
            )
            if book.author_id:
                for reviewer_id in reviews:
                    authors_read_by[reviewer_id].add(book.author_id)
            logger.info(f"[{done}/{len(books)}] book {book.id}: {len(reviews)} raters")
        return dict(authors_read_by)
