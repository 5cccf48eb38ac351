"""
Cache-first page retrieval.
"""

import logging
from dataclasses import dataclass, field, replace
from urllib.parse import quote, urlencode

from .cache import PageCache
from .constants import GOODREADS_BASE_URL
from .session import GoodreadsSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageRequest:
    """One logical page: endpoint path plus query parameters.

    Parameter values may already be URL-encoded (e.g. shelf names with
    special characters); ``%`` is kept so they are not encoded twice.
    """

    path: str
    params: tuple[tuple[str, str], ...] = ()
    requires_auth: bool = field(default=False, compare=False)
    base_url: str = field(default=GOODREADS_BASE_URL, compare=False)

    @classmethod
    def build(
        cls,
        path: str,
        params: dict[str, object] | None = None,
        requires_auth: bool = False,
        base_url: str = GOODREADS_BASE_URL,
    ) -> "PageRequest":
        items = tuple((key, str(value)) for key, value in (params or {}).items() if value is not None)
        return cls(path=path, params=items, requires_auth=requires_auth, base_url=base_url.rstrip("/"))

    @property
    def query(self) -> str:
        return urlencode(sorted(self.params), safe="%", quote_via=quote)

    @property
    def cache_key(self) -> str:
        """Canonical request signature: path plus sorted parameters."""
        return f"{self.path}?{self.query}" if self.params else self.path

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.cache_key}"

    @property
    def page(self) -> int:
        for key, value in self.params:
            if key == "page":
                return int(value)
        return 1

    def with_page(self, page: int) -> "PageRequest":
        params = tuple((key, value) for key, value in self.params if key != "page") + (("page", str(page)),)
        return replace(self, params=params)


class PageFetcher:
    """Fetches raw page content, consulting the page cache first."""

    def __init__(self, session: GoodreadsSession, cache: PageCache):
        self.session = session
        self.cache = cache
        self.network_requests = 0
        self.cache_hits = 0

    def cache_key_for(self, request: PageRequest) -> str:
        """Cache key of a page; pages seen through the cookie are kept apart from anonymous views."""
        if self.session.authenticated:
            return f"{request.cache_key}#auth"
        return request.cache_key

    async def fetch_page(self, request: PageRequest) -> str:
        """
        Return the raw content of one page.

        Args:
            request: The page to fetch

        Returns:
            str: Page content, from cache when fresh, otherwise from the network
        """
        key = self.cache_key_for(request)
        cached = await self.cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            logger.debug(f"Cache hit: {key}")
            return cached

        content = await self.session.fetch_text(request.url, requires_auth=request.requires_auth)
        self.network_requests += 1
        await self.cache.put(key, content)
        return content
