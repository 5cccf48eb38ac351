#!/usr/bin/env python3
"""
Engine Configuration

Explicit configuration values passed into the engine's entry points.
"""

import logging
import os
import tempfile
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    CACHE_DIR_NAME,
    DEFAULT_BACKOFF_MAX,
    DEFAULT_BACKOFF_MIN,
    DEFAULT_CACHE_TTL_DAYS,
    DEFAULT_COOKIE_PATH,
    DEFAULT_DICT_BUDGET_MINUTES,
    DEFAULT_DICT_TRIGGER_RATINGS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_PAGES,
    DEFAULT_REQUEST_DELAY,
    DEFAULT_RESULT_CAP,
    DEFAULT_RIGOR_LEVEL,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    GOODREADS_BASE_URL,
)
from .exceptions import CredentialsMissingError, UnsupportedRigorError

logger = logging.getLogger(__name__)


def default_cache_dir() -> Path:
    """Cache root shared by all runs: $GOODSCRAPES_CACHE_DIR or <tmp>/FileCache/goodscrapes."""
    override = os.environ.get("GOODSCRAPES_CACHE_DIR")
    if override:
        return Path(override)
    return Path(tempfile.gettempdir()) / CACHE_DIR_NAME / "goodscrapes"


def serialize_paths(obj: Any) -> Any:
    """Recursively convert Path objects to strings."""
    if isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, dict):
        return {k: serialize_paths(v) for k, v in obj.items()}
    elif isinstance(obj, list | tuple):
        return [serialize_paths(item) for item in obj]
    return obj


def load_cookie(cookie_file: Path | str = DEFAULT_COOKIE_PATH) -> str:
    """Read the opaque cookie string from the credential file.

    Args:
        cookie_file: Path to a file holding the browser's Cookie header value

    Returns:
        The cookie string, stripped of surrounding whitespace

    Raises:
        CredentialsMissingError: If the file is missing, unreadable or empty
    """
    path = Path(cookie_file).expanduser()
    try:
        cookie = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise CredentialsMissingError(f"Cannot read cookie file {path}: {e}") from e

    if not cookie:
        raise CredentialsMissingError(f"Cookie file {path} is empty")

    logger.debug(f"Loaded cookie from {path} ({len(cookie)} chars)")
    return cookie


def validate_rigor_level(level: int) -> int:
    """Reject rigor levels that cannot enumerate raters.

    Level 0 would only surface the most recent raters of a book.
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise UnsupportedRigorError(f"Rigor level must be an integer, got {level!r}")
    if level < 1:
        raise UnsupportedRigorError(
            f"Rigor level {level} is not supported for reviewer enumeration (latest raters only); use 1 or higher"
        )
    return level


@dataclass(frozen=True)
class RigorSettings:
    """Thresholds steering how hard the engine enumerates a book's raters."""

    level: int = DEFAULT_RIGOR_LEVEL
    result_cap: int = DEFAULT_RESULT_CAP
    dict_trigger_ratings: int = DEFAULT_DICT_TRIGGER_RATINGS
    base_budget_minutes: int = DEFAULT_DICT_BUDGET_MINUTES

    def __post_init__(self):
        validate_rigor_level(self.level)
        if self.result_cap <= 0:
            raise ValueError(f"result_cap must be positive, got {self.result_cap}")
        if self.dict_trigger_ratings < 0:
            raise ValueError(f"dict_trigger_ratings must not be negative, got {self.dict_trigger_ratings}")

    @property
    def uses_dictionary(self) -> bool:
        return self.level >= 2

    @property
    def dictionary_budget_seconds(self) -> float:
        """Wall-clock budget for the dictionary pass (0 when the level has none)."""
        if not self.uses_dictionary:
            return 0.0
        minutes = self.base_budget_minutes if self.level == 2 else self.level
        return minutes * 60.0


@dataclass(frozen=True)
class EngineConfig:
    """Immutable run configuration for a GoodreadsScraper."""

    base_url: str = GOODREADS_BASE_URL
    cookie: str | None = field(default=None, repr=False)
    cache_dir: Path = field(default_factory=default_cache_dir)
    cache_ttl_days: float = DEFAULT_CACHE_TTL_DAYS
    request_delay: float = DEFAULT_REQUEST_DELAY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    backoff_min: float = DEFAULT_BACKOFF_MIN
    backoff_max: float = DEFAULT_BACKOFF_MAX
    timeout: int = DEFAULT_TIMEOUT
    max_pages: int = DEFAULT_MAX_PAGES
    user_agent: str = DEFAULT_USER_AGENT
    rigor: RigorSettings = field(default_factory=RigorSettings)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {self.max_pages}")
        if self.request_delay < 0:
            raise ValueError(f"request_delay must not be negative, got {self.request_delay}")

    @property
    def authenticated(self) -> bool:
        return bool(self.cookie)

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serializable view of the configuration with the cookie masked."""
        data = serialize_paths(asdict(self))
        data["cookie"] = "***" if self.cookie else None
        return data


def configure(
    credential: str | bool | None = None,
    cache_ttl_days: float = DEFAULT_CACHE_TTL_DAYS,
    *,
    cookie_file: Path | str | None = None,
    rigor: RigorSettings | int | None = None,
    **overrides: Any,
) -> EngineConfig:
    """
    Build the engine configuration.

    Args:
        credential: Cookie string, or True to read it from ``cookie_file``
            (default ``./.cookie``). None runs anonymously.
        cache_ttl_days: Days a fetched page is reused before refetching
        cookie_file: Credential file to read when ``credential`` is True
        rigor: Rigor settings or a bare rigor level
        **overrides: Any other EngineConfig field

    Returns:
        EngineConfig: The validated configuration
    """
    if credential is True:
        cookie: str | None = load_cookie(cookie_file or DEFAULT_COOKIE_PATH)
    elif isinstance(credential, str):
        cookie = credential.strip() or None
        if cookie is None:
            raise CredentialsMissingError("Empty cookie string given")
    else:
        cookie = None

    if isinstance(rigor, int):
        rigor = RigorSettings(level=rigor)

    config_kwargs: dict[str, Any] = {"cookie": cookie, "cache_ttl_days": cache_ttl_days, **overrides}
    if rigor is not None:
        config_kwargs["rigor"] = rigor
    if "cache_dir" in config_kwargs:
        config_kwargs["cache_dir"] = Path(config_kwargs["cache_dir"])

    config = EngineConfig(**config_kwargs)
    logger.info(
        f"Configured engine: {'authenticated' if config.authenticated else 'anonymous'}, "
        f"cache {config.cache_dir} ({config.cache_ttl_days} days), rigor {config.rigor.level}"
    )
    return config
