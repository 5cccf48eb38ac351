#!/usr/bin/env python3
"""
Tests for PaginationWalker traversal, bounds and progress
"""

import pytest

from goodscrapes.cache import PageCache
from goodscrapes.extract import PageSchema
from goodscrapes.fetcher import PageFetcher, PageRequest
from goodscrapes.walker import PaginationWalker
from tests.test_utils.fakes import FakeClock, FakeSession
from tests.test_utils.goodreads_pages import ShelfRow, shelf_page, shelf_url

USER_ID = "7"


def _first_request() -> PageRequest:
    return PageRequest.build(
        f"/review/list/{USER_ID}", {"shelf": "%23ALL%23", "per_page": 100, "view": "table", "page": 1}
    )


def _shelf_session(pages: list[list[str]], total: int | None = None, endless: bool = False) -> FakeSession:
    """One shelf page per list of book ids; every page but the last links to the next."""
    session = FakeSession()
    for number, book_ids in enumerate(pages, start=1):
        has_next = endless or number < len(pages)
        rows = [ShelfRow(book_id, "100") for book_id in book_ids]
        session.add(shelf_url(USER_ID, page=number), shelf_page(rows, has_next=has_next, total=total))
    return session


def _walker(session: FakeSession, tmp_path, **kwargs) -> PaginationWalker:
    fetcher = PageFetcher(session, PageCache(tmp_path / "cache", ttl_days=31))
    return PaginationWalker(fetcher, _first_request(), PageSchema.SHELF, **kwargs)


async def _book_ids(walker: PaginationWalker) -> list[str]:
    return [entry.book.id async for entry in walker]


class TestTraversal:
    @pytest.mark.asyncio
    async def test_follows_next_until_last_page(self, tmp_path):
        session = _shelf_session([["1", "2"], ["3", "4"], ["5"]])
        walker = _walker(session, tmp_path)

        assert await _book_ids(walker) == ["1", "2", "3", "4", "5"]
        assert walker.pages_fetched == 3
        assert walker.stop_reason == "last_page"
        assert session.requests == [shelf_url(USER_ID, page=n) for n in (1, 2, 3)]

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, tmp_path):
        """A next link pointing at an empty page ends the walk."""
        session = _shelf_session([["1"]], endless=True)
        walker = _walker(session, tmp_path)

        assert await _book_ids(walker) == ["1"]
        assert walker.pages_fetched == 2
        assert walker.stop_reason == "empty_page"

    @pytest.mark.asyncio
    async def test_is_lazy(self, tmp_path):
        session = _shelf_session([["1", "2"], ["3"]])
        walker = _walker(session, tmp_path)

        async for entry in walker:
            assert entry.book.id == "1"
            break

        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_max_pages_bounds_runaway_pagination(self, tmp_path, caplog):
        session = _shelf_session([["1"], ["2"], ["3"], ["4"], ["5"]], endless=True)
        walker = _walker(session, tmp_path, max_pages=3)

        assert await _book_ids(walker) == ["1", "2", "3"]
        assert walker.stop_reason == "max_pages"
        assert len(session.requests) == 3
        assert "page bound reached" in caplog.text


class TestLimit:
    @pytest.mark.asyncio
    async def test_limit_within_page(self, tmp_path):
        session = _shelf_session([["1", "2"], ["3", "4"]])
        walker = _walker(session, tmp_path, limit=3)

        assert await _book_ids(walker) == ["1", "2", "3"]
        assert walker.stop_reason == "limit"

    @pytest.mark.asyncio
    async def test_limit_at_page_boundary_skips_next_page(self, tmp_path):
        session = _shelf_session([["1", "2"], ["3", "4"]])
        walker = _walker(session, tmp_path, limit=2)

        assert await _book_ids(walker) == ["1", "2"]
        assert len(session.requests) == 1

    @pytest.mark.asyncio
    async def test_zero_limit_fetches_nothing(self, tmp_path):
        session = _shelf_session([["1"]])
        walker = _walker(session, tmp_path, limit=0)

        assert await _book_ids(walker) == []
        assert session.requests == []
        assert walker.stop_reason == "limit"


class TestRestart:
    @pytest.mark.asyncio
    async def test_each_iteration_restarts_from_first_page(self, tmp_path):
        """A second pass yields the same records and is served from the cache."""
        session = _shelf_session([["1", "2"], ["3"]])
        walker = _walker(session, tmp_path)

        first = await _book_ids(walker)
        requests_after_first = len(session.requests)
        second = await _book_ids(walker)

        assert first == second == ["1", "2", "3"]
        assert requests_after_first == 2
        assert len(session.requests) == 2
        assert walker.completed == 3

    @pytest.mark.asyncio
    async def test_should_stop_checked_before_each_page(self, tmp_path):
        session = _shelf_session([["1"], ["2"], ["3"]])
        calls = []

        def should_stop():
            calls.append(len(session.requests))
            return len(session.requests) >= 2

        walker = _walker(session, tmp_path, should_stop=should_stop)

        assert await _book_ids(walker) == ["1", "2"]
        assert walker.stop_reason == "stopped"
        assert calls == [0, 1, 2]


class TestProgress:
    @pytest.mark.asyncio
    async def test_events_after_each_record(self, tmp_path):
        clock = FakeClock()
        session = _shelf_session([["1", "2"], ["3"]], total=3)
        session.on_fetch = lambda url: clock.advance(1.5)
        events = []
        walker = _walker(session, tmp_path, on_progress=events.append, clock=clock)

        await _book_ids(walker)

        assert [event.completed for event in events] == [1, 2, 3]
        assert [event.total for event in events] == [3, 3, 3]
        assert [event.elapsed for event in events] == [1.5, 1.5, 3.0]
        assert events[-1].percent == 100.0

    @pytest.mark.asyncio
    async def test_total_capped_by_limit(self, tmp_path):
        session = _shelf_session([["1", "2"], ["3", "4"]], total=250)
        events = []
        walker = _walker(session, tmp_path, limit=3, on_progress=events.append)

        await _book_ids(walker)

        assert [event.total for event in events] == [3, 3, 3]

    @pytest.mark.asyncio
    async def test_total_never_below_completed(self, tmp_path):
        """A stale page total must not make the estimate lag behind."""
        session = _shelf_session([["1", "2"], ["3"]], total=1)
        events = []
        walker = _walker(session, tmp_path, on_progress=events.append)

        await _book_ids(walker)

        assert [(event.completed, event.total) for event in events] == [(1, 1), (2, 2), (3, 3)]

    @pytest.mark.asyncio
    async def test_unknown_total(self, tmp_path):
        session = _shelf_session([["1"]])
        events = []
        walker = _walker(session, tmp_path, on_progress=events.append)

        await _book_ids(walker)

        assert events[0].total is None
        assert events[0].percent is None
