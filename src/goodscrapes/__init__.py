"""
goodscrapes: resumable, rate-limited Goodreads scraping engine
"""

from .config import EngineConfig, RigorSettings, configure, load_cookie
from .exceptions import (
    AuthError,
    CredentialsMissingError,
    GoodscrapesError,
    NoAuthorsError,
    PreconditionError,
    RequestFailedError,
    UnsupportedRigorError,
)
from .models import Author, Book, EntityKind, Review, User
from .progress import ProgressEvent, ProgressMeter
from .scraper import GoodreadsScraper
from .store import EntityStore

__all__ = [
    "AuthError",
    "Author",
    "Book",
    "CredentialsMissingError",
    "EngineConfig",
    "EntityKind",
    "EntityStore",
    "GoodreadsScraper",
    "GoodscrapesError",
    "NoAuthorsError",
    "PreconditionError",
    "ProgressEvent",
    "ProgressMeter",
    "RequestFailedError",
    "Review",
    "RigorSettings",
    "UnsupportedRigorError",
    "User",
    "configure",
    "load_cookie",
]
