"""
Disk-backed page cache with TTL expiry.

Every successfully fetched page is written immediately, so an interrupted run
restarts without re-issuing requests for pages it already has.
"""

import contextlib
import hashlib
import json
import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class PageCache:
    """Best-effort key/value store for raw page content.

    - Keys are hashed (SHA-256) to avoid filesystem issues with long URLs
    - Each entry is a JSON envelope carrying its own ``stored_at`` timestamp
    - Unreadable or corrupt entries are treated as misses
    """

    def __init__(self, root_dir: Path | str, ttl_days: float, clock: Callable[[], float] = time.time):
        self.root_dir = Path(root_dir)
        self.ttl_seconds = max(0.0, float(ttl_days) * SECONDS_PER_DAY)
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def path_for_key(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.root_dir / digest[:2] / f"{digest}.json"

    def _is_fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self.ttl_seconds

    async def get(self, key: str) -> str | None:
        """Return cached content for ``key``, or None on miss, expiry or corruption."""
        if not self.enabled:
            return None

        path = self.path_for_key(key)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                entry = json.loads(await f.read())
            stored_key = entry["key"]
            stored_at = float(entry["stored_at"])
            content = entry["content"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring unreadable cache entry {path.name}: {type(e).__name__}: {e}")
            return None

        if stored_key != key or not isinstance(content, str):
            logger.debug(f"Ignoring mismatched cache entry {path.name}")
            return None

        if not self._is_fresh(stored_at):
            logger.debug(f"Cache entry expired for {key}")
            return None

        return content

    async def put(self, key: str, content: str) -> None:
        """Store ``content`` under ``key``; write failures are logged, not raised."""
        if not self.enabled:
            return

        path = self.path_for_key(key)
        tmp_path = path.with_suffix(".tmp")
        entry = {"key": key, "stored_at": self._clock(), "content": content}

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(entry))
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning(f"Failed to cache page for {key}: {e}")
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)

    async def purge_expired(self) -> int:
        """Delete expired or unreadable entries. Returns the number of files removed."""
        if not self.root_dir.exists():
            return 0

        removed = 0
        for path in self.root_dir.glob("*/*.json"):
            try:
                async with aiofiles.open(path, encoding="utf-8") as f:
                    stored_at = float(json.loads(await f.read())["stored_at"])
                if self.enabled and self._is_fresh(stored_at):
                    continue
            except (OSError, ValueError, KeyError, TypeError):
                pass

            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to remove cache entry {path}: {e}")

        if removed:
            logger.info(f"Purged {removed} stale cache entries from {self.root_dir}")
        return removed
