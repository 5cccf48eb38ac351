#!/usr/bin/env python3
"""
Functions for extracting entity records from Goodreads HTML.

Markup changes outside our control, so every field lookup is tolerant:
a missing element leaves the field as None. Only a record without an id is
dropped (with a warning).
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from selectolax.lexbor import LexborHTMLParser, LexborNode

from .common import parse_count
from .models import Author, Book, Review, ReviewEntry, ShelfEntry, User

logger = logging.getLogger(__name__)

BOOK_ID_RE = re.compile(r"/book/show/(\d+)")
AUTHOR_ID_RE = re.compile(r"/author/show/(\d+)")
USER_ID_RE = re.compile(r"/user/show/(\d+)")
REVIEW_ID_RE = re.compile(r"(?:review_|/review/show/)(\d+)")
SHELF_OWNER_RE = re.compile(r"/review/list/(\d+)")

SHOWING_TOTAL_RE = re.compile(r"Showing\s+[\d,]+\s*-\s*[\d,]+\s+of\s+([\d,]+)", re.IGNORECASE)
BOOKS_TOTAL_RE = re.compile(r"\(([\d,]+)\s+books?\)", re.IGNORECASE)
MINIRATING_RE = re.compile(r"([\d.]+)\s+avg rating\W+([\d,]+)\s+ratings?", re.IGNORECASE)
PAREN_COUNT_RE = re.compile(r"\(([\d,]+)\)")
BOOKS_COUNT_RE = re.compile(r"([\d,]+)\s+books?", re.IGNORECASE)
AJAX_UPDATE_RE = re.compile(r"Element\.update\(\s*\"reviews\"\s*,\s*\"((?:[^\"\\]|\\.)*)\"\s*\)", re.DOTALL)

RATING_TITLES = {
    "did not like it": 1,
    "it was ok": 2,
    "liked it": 3,
    "really liked it": 4,
    "it was amazing": 5,
}

PRIVATE_PROFILE_MARKERS = ("this profile is private", "this account is private")


class PageSchema(StrEnum):
    SHELF = "shelf"
    AUTHOR_BOOKS = "author_books"
    REVIEWS = "reviews"
    USER = "user"


@dataclass
class ExtractedPage:
    """Records found on one page plus what the page says about pagination."""

    records: list[Any] = field(default_factory=list)
    has_next: bool = False
    total: int | None = None
    owner: Author | None = None


def _match_id(pattern: re.Pattern, value: str | None) -> str | None:
    if not value:
        return None
    match = pattern.search(value)
    return match.group(1) if match else None


def _text(node: LexborNode | None) -> str | None:
    if node is None:
        return None
    text = " ".join((node.text(strip=False) or "").split())
    return text or None


def _attr(node: LexborNode | None, name: str) -> str | None:
    if node is None:
        return None
    value = node.attributes.get(name)
    return value.strip() if value else None


def _display_name(name: str | None) -> str | None:
    """Turn the shelf table's "Last, First" into "First Last"."""
    if not name:
        return name
    parts = [part.strip() for part in name.split(",")]
    if len(parts) == 2 and all(parts):
        return f"{parts[1]} {parts[0]}"
    return name


def _has_next(tree: LexborHTMLParser) -> bool:
    for link in tree.css("a.next_page, a[rel='next']"):
        if "disabled" not in (link.attributes.get("class") or ""):
            return True
    return False


def _page_total(tree: LexborHTMLParser) -> int | None:
    title = _text(tree.css_first("title")) or ""
    if match := BOOKS_TOTAL_RE.search(title):
        return parse_count(match.group(1))

    body = tree.body
    body_text = _text(body) if body is not None else None
    if body_text and (match := SHOWING_TOTAL_RE.search(body_text)):
        return parse_count(match.group(1))
    return None


def extract_shelf_page(html: str) -> ExtractedPage:
    """Parse one page of a user's shelf in table view."""
    tree = LexborHTMLParser(html)
    entries: list[ShelfEntry] = []

    for row in tree.css("tr.bookalike") or tree.css("tr.review"):
        title_link = row.css_first("td.title a[href*='/book/show/']") or row.css_first("a[href*='/book/show/']")
        book_id = _match_id(BOOK_ID_RE, _attr(title_link, "href"))
        if not book_id:
            logger.warning(f"Skipping shelf row without book id (row id={row.attributes.get('id')})")
            continue

        author_link = row.css_first("td.author a[href*='/author/show/']")
        author_id = _match_id(AUTHOR_ID_RE, _attr(author_link, "href"))
        author = Author(id=author_id, name=_display_name(_text(author_link))) if author_id else None

        num_ratings = parse_count(_text(row.css_first("td.num_ratings div.value")))
        avg_text = _text(row.css_first("td.avg_rating div.value"))

        book = Book(
            id=book_id,
            title=_attr(title_link, "title") or _text(title_link),
            author_id=author_id,
            img_url=_attr(row.css_first("td.cover img"), "src"),
            num_ratings=num_ratings,
            avg_rating=_parse_float(avg_text),
            url=_attr(title_link, "href"),
        )
        entries.append(ShelfEntry(book=book, author=author))

    return ExtractedPage(records=entries, has_next=_has_next(tree), total=_page_total(tree))


def _parse_float(text: str | None) -> float | None:
    try:
        return float(text) if text else None
    except ValueError:
        return None


def _author_books_owner(tree: LexborHTMLParser) -> Author | None:
    header_link = tree.css_first("h1 a.authorName") or tree.css_first("a.authorName")
    author_id = _match_id(AUTHOR_ID_RE, _attr(header_link, "href"))
    if not author_id:
        return None

    img_url = None
    for img in tree.css("img"):
        src = _attr(img, "src") or ""
        parent = img.parent
        parent_href = _attr(parent, "href") if parent is not None else None
        if "/authors/" in src or _match_id(AUTHOR_ID_RE, parent_href) == author_id:
            img_url = src or None
            break

    return Author(
        id=author_id,
        name=_text(header_link),
        img_url=img_url,
        works_url=f"/author/list/{author_id}",
    )


def extract_author_books_page(html: str) -> ExtractedPage:
    """Parse one page of an author's book list, including the author header."""
    tree = LexborHTMLParser(html)
    owner = _author_books_owner(tree)
    books: list[Book] = []

    for row in tree.css("tr[itemtype='http://schema.org/Book']"):
        title_link = row.css_first("a.bookTitle")
        book_id = _match_id(BOOK_ID_RE, _attr(title_link, "href"))
        if not book_id:
            logger.warning("Skipping author book row without book id")
            continue

        row_author_id = _match_id(AUTHOR_ID_RE, _attr(row.css_first("a.authorName"), "href"))
        avg_rating = num_ratings = None
        if match := MINIRATING_RE.search(_text(row.css_first("span.minirating")) or ""):
            avg_rating = _parse_float(match.group(1))
            num_ratings = parse_count(match.group(2))

        title_node = title_link.css_first("span[itemprop='name']") if title_link is not None else None
        books.append(
            Book(
                id=book_id,
                title=_text(title_node) or _text(title_link),
                author_id=owner.id if owner else row_author_id,
                img_url=_attr(row.css_first("img.bookCover") or row.css_first("img"), "src"),
                num_ratings=num_ratings,
                avg_rating=avg_rating,
                url=_attr(title_link, "href"),
            )
        )

    return ExtractedPage(records=books, has_next=_has_next(tree), total=_page_total(tree), owner=owner)


def unwrap_ajax_reviews(raw: str) -> str:
    """Return the HTML inside an ``Element.update("reviews", "...")`` response, or ``raw`` as is."""
    match = AJAX_UPDATE_RE.search(raw)
    if not match:
        return raw

    inner = match.group(1)
    try:
        # JS allows \' which JSON does not
        unescaped = inner.replace("\\'", "'")
        return json.loads('"' + unescaped + '"')
    except ValueError:
        logger.debug("Falling back to naive unescaping of ajax review payload")
        return inner.replace('\\"', '"').replace("\\n", "\n").replace("\\/", "/")


def _review_rating(node: LexborNode) -> int | None:
    stars = node.css_first("span.staticStars")
    title = (_attr(stars, "title") or "").lower()
    if title in RATING_TITLES:
        return RATING_TITLES[title]

    full = len(node.css("span.staticStar.p10"))
    return full or None


def extract_reviews_page(raw: str) -> ExtractedPage:
    """Parse one page of a book's review list (plain HTML or ajax wrapper)."""
    tree = LexborHTMLParser(unwrap_ajax_reviews(raw))
    entries: list[ReviewEntry] = []

    for node in tree.css("div.review"):
        user_link = node.css_first("a.user") or node.css_first("a[href*='/user/show/']")
        user_id = _match_id(USER_ID_RE, _attr(user_link, "href"))
        review_id = _match_id(REVIEW_ID_RE, node.attributes.get("id")) or _match_id(
            REVIEW_ID_RE, _attr(node.css_first("a.reviewDate"), "href")
        )
        if not user_id or not review_id:
            logger.warning(f"Skipping review without identity (review={review_id}, user={user_id})")
            continue

        avatar = node.css_first("a.imgcol img") or node.css_first("img")
        user = User(
            id=user_id,
            name=_attr(user_link, "title") or _text(user_link),
            img_url=_attr(avatar, "src"),
            url=_attr(user_link, "href"),
        )
        review = Review(
            id=review_id,
            user_id=user_id,
            rating=_review_rating(node),
            text=_text(node.css_first("div.reviewText span.readable") or node.css_first("div.reviewText")),
            date=_text(node.css_first("a.reviewDate")),
        )
        entries.append(ReviewEntry(review=review, user=user))

    return ExtractedPage(records=entries, has_next=_has_next(tree))


def extract_user_page(html: str, user_id: str | None = None) -> ExtractedPage:
    """Parse a user's profile page into a single User record."""
    tree = LexborHTMLParser(html)

    canonical = _attr(tree.css_first("link[rel='canonical']"), "href")
    found_id = _match_id(USER_ID_RE, canonical)
    if not found_id:
        for link in tree.css("a[href*='/review/list/']"):
            if found_id := _match_id(SHELF_OWNER_RE, _attr(link, "href")):
                break
    entity_id = found_id or user_id
    if not entity_id:
        logger.warning("Skipping user profile without user id")
        return ExtractedPage()

    page_text = (_text(tree.body) if tree.body is not None else "") or ""
    is_private = any(marker in page_text.lower() for marker in PRIVATE_PROFILE_MARKERS)

    user = User(
        id=entity_id,
        name=_text(tree.css_first("h1.userProfileName")) or _attr(tree.css_first("meta[property='og:title']"), "content"),
        img_url=_attr(tree.css_first("div.leftAlignedProfilePicture img") or tree.css_first("img.profilePictureIcon"), "src"),
        num_books=None if is_private else _library_size(tree),
        is_private=is_private,
        url=canonical,
    )
    return ExtractedPage(records=[user])


def _library_size(tree: LexborHTMLParser) -> int | None:
    for link in tree.css("a[href*='/review/list/']"):
        href = _attr(link, "href") or ""
        text = _text(link) or ""
        if "%23ALL%23" in href or "#ALL#" in href or text.lower().startswith("all"):
            if match := PAREN_COUNT_RE.search(text):
                return parse_count(match.group(1))

    for link in tree.css("a[href*='/review/list/']"):
        if match := BOOKS_COUNT_RE.search(_text(link) or ""):
            return parse_count(match.group(1))
    return None


EXTRACTORS: dict[PageSchema, Callable[..., ExtractedPage]] = {
    PageSchema.SHELF: extract_shelf_page,
    PageSchema.AUTHOR_BOOKS: extract_author_books_page,
    PageSchema.REVIEWS: extract_reviews_page,
    PageSchema.USER: extract_user_page,
}


def extract(raw: str, schema: PageSchema | str, **context: Any) -> ExtractedPage:
    """
    Turn raw page content into records for the given schema.

    Args:
        raw: Page content
        schema: Which page layout to parse
        **context: Schema-specific hints (``user_id`` for profile pages)

    Returns:
        ExtractedPage: Records and pagination hints
    """
    extractor = EXTRACTORS[PageSchema(schema)]
    if not raw:
        logger.warning(f"Empty {schema} page")
        return ExtractedPage()
    return extractor(raw, **context)
