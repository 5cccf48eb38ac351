#!/usr/bin/env python3
"""
Entity records extracted from Goodreads pages.

Every field except the source-assigned id is optional: pages evolve outside
our control and a view of an entity rarely carries all of its attributes.
"""

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Any, TypeAlias


class EntityKind(StrEnum):
    AUTHOR = "author"
    BOOK = "book"
    USER = "user"
    REVIEW = "review"


@dataclass
class Author:
    """An author as seen on shelves and author pages."""

    id: str
    name: str | None = None
    img_url: str | None = None
    works_url: str | None = None


@dataclass
class Book:
    """A single catalog edition; editions of the same work are not merged."""

    id: str
    title: str | None = None
    author_id: str | None = None
    img_url: str | None = None
    num_ratings: int | None = None
    avg_rating: float | None = None
    url: str | None = None


@dataclass
class User:
    """A Goodreads member."""

    id: str
    name: str | None = None
    img_url: str | None = None
    num_books: int | None = None
    is_private: bool | None = None
    url: str | None = None

    @property
    def is_rankable(self) -> bool:
        """Private accounts and empty libraries cannot be compared."""
        return not self.is_private and bool(self.num_books)


@dataclass
class Review:
    """A rating or review linking a user to a book (and its author)."""

    id: str
    user_id: str | None = None
    book_id: str | None = None
    author_id: str | None = None
    rating: int | None = None
    text: str | None = None
    date: str | None = None


Entity: TypeAlias = Author | Book | User | Review

RECORD_TYPES: dict[EntityKind, type] = {
    EntityKind.AUTHOR: Author,
    EntityKind.BOOK: Book,
    EntityKind.USER: User,
    EntityKind.REVIEW: Review,
}


def field_names(record_type: type) -> set[str]:
    return {f.name for f in fields(record_type)}


def known_fields(record: Entity) -> dict[str, Any]:
    """Fields of a record that carry a value (not None, not empty string)."""
    return {f.name: value for f in fields(record) if not is_unknown(value := getattr(record, f.name))}


def is_unknown(value: Any) -> bool:
    return value is None or value == ""


@dataclass
class ShelfEntry:
    """One row of a user's shelf: the book and its (primary) author."""

    book: Book
    author: Author | None = None


@dataclass
class ReviewEntry:
    """One item of a book's review list: the review and the reviewer."""

    review: Review
    user: User
