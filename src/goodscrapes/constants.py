#!/usr/bin/env python3
"""
Constants for goodscrapes.

Centralized defaults for URLs, pacing and the enumeration thresholds.
"""

GOODREADS_BASE_URL = "https://www.goodreads.com"

# Endpoint paths (formatted with the entity id)
SHELF_PATH = "/review/list/{user_id}"
AUTHOR_BOOKS_PATH = "/author/list/{author_id}"
REVIEWS_PATH = "/book/reviews/{book_id}"
USER_PATH = "/user/show/{user_id}"

SHELF_PAGE_SIZE = 100
AUTHOR_BOOKS_PAGE_SIZE = 100

# Default shelf, URL-encoded "#ALL#"
ALL_SHELVES = "%23ALL%23"

# Request pacing
DEFAULT_REQUEST_DELAY = 1.0  # seconds between outbound requests
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BACKOFF_MIN = 2.0
DEFAULT_BACKOFF_MAX = 60.0
DEFAULT_TIMEOUT = 60
DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) goodscrapes"

# Page cache
DEFAULT_CACHE_TTL_DAYS = 31
CACHE_DIR_NAME = "FileCache"

# Guard against malformed "next" links looping forever
DEFAULT_MAX_PAGES = 500

# Reviewer enumeration thresholds (empirical, the source may change them)
DEFAULT_RIGOR_LEVEL = 1
DEFAULT_RESULT_CAP = 5400
DEFAULT_DICT_TRIGGER_RATINGS = 3000
DEFAULT_DICT_BUDGET_MINUTES = 2
STAR_RATINGS = (1, 2, 3, 4, 5)

DEFAULT_DICTIONARY_PATH = "./dict/default.lst"
DEFAULT_COOKIE_PATH = "./.cookie"

# Likeminded report defaults
DEFAULT_MIN_COMMON_PERCENT = 5
DEFAULT_MAX_AUTHOR_BOOKS = 600

# HTTP statuses worth retrying
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
