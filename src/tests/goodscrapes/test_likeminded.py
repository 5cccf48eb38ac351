#!/usr/bin/env python3
"""
End-to-end tests for the likeminded pipeline
"""

import pytest

from goodscrapes.exceptions import NoAuthorsError
from goodscrapes.likeminded import LikemindedFinder, LikemindedSettings
from tests.test_utils.goodreads_pages import (
    AuthorBookRow,
    ReviewItem,
    ShelfRow,
    author_books_page,
    author_books_url,
    reviews_page,
    reviews_url,
    shelf_page,
    shelf_url,
    user_page,
    user_url,
)

TARGET = "7"


@pytest.fixture
def site(fake_session):
    """Target reads two authors; five other members rated their books."""
    fake_session.add(shelf_url(TARGET), shelf_page([ShelfRow("1", "101"), ShelfRow("2", "102")]))
    fake_session.add(author_books_url("101"), author_books_page("101", "First Author", [AuthorBookRow("11")]))
    fake_session.add(author_books_url("102"), author_books_page("102", "Second Author", [AuthorBookRow("21")]))
    fake_session.add(
        reviews_url("11", rating=5),
        reviews_page([ReviewItem("1", "5"), ReviewItem("2", "6"), ReviewItem("3", TARGET)]),
    )
    fake_session.add(
        reviews_url("21", rating=4),
        reviews_page([ReviewItem("4", "5"), ReviewItem("5", "8"), ReviewItem("6", "10")]),
    )
    fake_session.add(user_url("5"), user_page("5", name="Both", num_books=100))
    fake_session.add(user_url("6"), user_page("6", private=True))
    fake_session.add(user_url("8"), user_page("8", name="Small", num_books=20))
    fake_session.add(user_url("10"), user_page("10", name="Empty", num_books=0))
    return fake_session


def _quiet_meter(label):
    return None


class TestLikemindedFinder:
    @pytest.mark.asyncio
    async def test_ranks_members_by_match_score(self, scraper, site):
        finder = LikemindedFinder(scraper, meter_factory=_quiet_meter)

        report = await finder.run(TARGET)

        assert sorted(report.authors) == ["101", "102"]
        assert [m.user.id for m in report.matches] == ["8", "5"]
        small, both = report.matches
        assert small.score == 50
        assert small.commonality == 50
        assert both.score == 20
        assert both.commonality == 100
        assert both.common_author_ids == {"101", "102"}
        assert report.candidates_considered == 4
        assert report.excluded_members == 2

    @pytest.mark.asyncio
    async def test_target_never_ranked_or_loaded(self, scraper, site):
        report = await LikemindedFinder(scraper, meter_factory=_quiet_meter).run(TARGET)

        assert TARGET not in {m.user.id for m in report.matches}
        assert user_url(TARGET) not in site.requests

    @pytest.mark.asyncio
    async def test_minimum_commonality_filters_before_profiles_load(self, scraper, site):
        settings = LikemindedSettings(min_common_percent=60)

        report = await LikemindedFinder(scraper, settings, meter_factory=_quiet_meter).run(TARGET)

        assert [m.user.id for m in report.matches] == ["5"]
        assert report.candidates_considered == 1
        assert user_url("8") not in site.requests

    @pytest.mark.asyncio
    async def test_author_book_limit(self, scraper, site):
        site.add(
            author_books_url("101"),
            author_books_page("101", "First Author", [AuthorBookRow("11"), AuthorBookRow("12")]),
        )
        settings = LikemindedSettings(max_author_books=1)

        await LikemindedFinder(scraper, settings, meter_factory=_quiet_meter).run(TARGET)

        assert not any("/book/reviews/12" in url for url in site.requests)

    @pytest.mark.asyncio
    async def test_default_meters_are_used(self, scraper, site):
        labels = []

        def factory(label):
            labels.append(label)
            return None

        await LikemindedFinder(scraper, meter_factory=factory).run(TARGET)

        assert labels[0] == "authors"
        assert set(labels) == {"authors", "books", "members"}

    @pytest.mark.asyncio
    async def test_no_authors_raises(self, scraper, fake_session):
        fake_session.add(shelf_url(TARGET), shelf_page([]))

        with pytest.raises(NoAuthorsError, match=f"user {TARGET}"):
            await LikemindedFinder(scraper, meter_factory=_quiet_meter).run(TARGET)


def test_settings_validate_percent():
    with pytest.raises(ValueError, match="min_common_percent"):
        LikemindedSettings(min_common_percent=101)
