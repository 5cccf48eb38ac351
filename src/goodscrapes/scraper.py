#!/usr/bin/env python3
"""
GoodreadsScraper: the engine's public operations.

Wires the page cache, the paced session, the extractors, the walker and the
reviewer enumeration together around one EntityStore per run.
"""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from .cache import PageCache
from .config import EngineConfig
from .constants import (
    ALL_SHELVES,
    AUTHOR_BOOKS_PAGE_SIZE,
    AUTHOR_BOOKS_PATH,
    DEFAULT_DICTIONARY_PATH,
    SHELF_PAGE_SIZE,
    SHELF_PATH,
    USER_PATH,
)
from .exceptions import CredentialsMissingError
from .extract import PageSchema, extract
from .fetcher import PageFetcher, PageRequest
from .models import Author, Book, EntityKind, Review, ShelfEntry, User
from .progress import ProgressCallback, ProgressEvent
from .rigor import ReviewerEnumerator
from .session import GoodreadsSession
from .store import EntityStore
from .walker import PaginationWalker

logger = logging.getLogger(__name__)


def is_intersection(shelf_name: str) -> bool:
    """A comma-joined shelf name asks for books on all of those shelves."""
    return "," in shelf_name


class GoodreadsScraper:
    """Reads authors, books, reviews and users, merging them into one store."""

    def __init__(
        self,
        config: EngineConfig,
        *,
        session: GoodreadsSession | None = None,
        cache: PageCache | None = None,
        store: EntityStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.session = session or GoodreadsSession(config)
        self.cache = cache or PageCache(config.cache_dir, config.cache_ttl_days)
        self.store = store or EntityStore()
        self.fetcher = PageFetcher(self.session, self.cache)
        self.reviews = ReviewerEnumerator(
            self.fetcher,
            self.store,
            config.rigor,
            max_pages=config.max_pages,
            base_url=config.base_url,
            clock=clock,
        )
        self._clock = clock

    async def close(self):
        await self.session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _walker(self, request: PageRequest, schema: PageSchema, **kwargs) -> PaginationWalker:
        return PaginationWalker(self.fetcher, request, schema, max_pages=self.config.max_pages, clock=self._clock, **kwargs)

    def _request(self, path: str, params: dict[str, object] | None = None, requires_auth: bool = False) -> PageRequest:
        return PageRequest.build(path, params, requires_auth=requires_auth, base_url=self.config.base_url)

    async def read_authors(
        self,
        user_id: str,
        shelf_names: list[str] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Author]:
        """
        Collect the authors of the books on a user's shelves.

        Args:
            user_id: Goodreads user number
            shelf_names: Shelves to union (default: all books). A comma-joined
                name such as "fiction,animals" intersects those shelves and
                needs the cookie.
            on_progress: Called after each shelf row

        Returns:
            dict: Authors keyed by author id

        Raises:
            CredentialsMissingError: If an intersection is requested anonymously
        """
        shelf_names = shelf_names or [ALL_SHELVES]
        if not self.session.authenticated and any(is_intersection(name) for name in shelf_names):
            raise CredentialsMissingError("Intersecting shelves requires a cookie; configure a credential")

        authors: dict[str, Author] = {}
        start = self._clock()
        done_before = 0

        def shelf_progress(event: ProgressEvent) -> None:
            # One sequence across all shelves: earlier shelves offset completed and total
            total = None if event.total is None else done_before + event.total
            on_progress(ProgressEvent(done_before + event.completed, total, self._clock() - start))

        for shelf in shelf_names:
            request = self._request(
                SHELF_PATH.format(user_id=user_id),
                {"shelf": shelf, "per_page": SHELF_PAGE_SIZE, "view": "table", "page": 1},
                requires_auth=is_intersection(shelf),
            )
            logger.info(f"Loading authors of user {user_id} from shelf {shelf}")

            walker = self._walker(request, PageSchema.SHELF, on_progress=shelf_progress if on_progress else None)
            entry: ShelfEntry
            async for entry in walker:
                self.store.upsert(EntityKind.BOOK, entry.book.id, entry.book)
                if entry.author is None:
                    continue
                authors[entry.author.id] = self.store.upsert(EntityKind.AUTHOR, entry.author.id, entry.author)
            done_before += walker.completed

        logger.info(f"Found {len(authors)} authors on {len(shelf_names)} shelves of user {user_id}")
        return authors

    async def read_author_books(
        self,
        author_id: str,
        limit: int | None = None,
        on_book: Callable[[Book], None] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Book]:
        """
        Collect an author's books, most popular first.

        The author header of each page (name, image) is merged into the store
        before the page's books are handed out.

        Args:
            author_id: Goodreads author id
            limit: Maximum number of books (some authors list thousands of editions)
            on_book: Called with each stored book
            on_progress: Called after each book

        Returns:
            dict: Books keyed by book id
        """
        request = self._request(
            AUTHOR_BOOKS_PATH.format(author_id=author_id), {"per_page": AUTHOR_BOOKS_PAGE_SIZE, "page": 1}
        )
        walker = self._walker(request, PageSchema.AUTHOR_BOOKS, limit=limit, on_progress=on_progress)

        books: dict[str, Book] = {}
        book: Book
        async for book in walker:
            owner = walker.owner
            if owner is not None and owner.id == str(author_id):
                self.store.upsert(EntityKind.AUTHOR, owner.id, owner)
            if not book.author_id:
                book.author_id = str(author_id)

            stored = self.store.upsert(EntityKind.BOOK, book.id, book)
            books[book.id] = stored
            if on_book is not None:
                on_book(stored)

        logger.debug(f"Author {author_id}: {len(books)} books ({walker.pages_fetched} pages)")
        return books

    async def read_reviews(
        self,
        book: Book,
        rigor_level: int | None = None,
        dictionary_path: Path | str = DEFAULT_DICTIONARY_PATH,
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, Review]:
        """Collect the distinct raters of a book; see ReviewerEnumerator.read_reviews."""
        return await self.reviews.read_reviews(
            book, rigor_level=rigor_level, dictionary_path=dictionary_path, on_progress=on_progress
        )

    async def read_user(self, user_id: str) -> User:
        """
        Load a member's profile (name, picture, library size, privacy).

        A profile that cannot be parsed still yields a User with only its id,
        which ranking treats as not comparable.
        """
        raw = await self.fetcher.fetch_page(self._request(USER_PATH.format(user_id=user_id)))
        page = extract(raw, PageSchema.USER, user_id=str(user_id))

        if not page.records:
            return self.store.upsert(EntityKind.USER, user_id, {})

        user: User = page.records[0]
        if user.id != str(user_id):
            logger.warning(f"Profile page of user {user_id} names user {user.id}; keeping requested id")
            user.id = str(user_id)
        return self.store.upsert(EntityKind.USER, user_id, user)
