"""Shared test configuration utilities and fixtures."""

from unittest.mock import patch

import pytest

from goodscrapes.cache import PageCache
from goodscrapes.config import EngineConfig
from goodscrapes.scraper import GoodreadsScraper
from goodscrapes.store import EntityStore
from tests.test_utils.fakes import FakeClock, FakeSession


def _no_sleep(seconds):
    """Synchronous sleep stub used to short-circuit tenacity waits in tests."""
    return None


@pytest.fixture(scope="session", autouse=True)
def disable_retry_delays():
    """Disable retry delays globally for all tests to speed up test suite.

    Retries will still happen (testing retry logic), but without wait times.
    Only patches tenacity's internal sleep functions, not asyncio.sleep globally.
    """
    import tenacity

    original_base_run_wait = tenacity.BaseRetrying._run_wait
    original_async_run_wait = tenacity.AsyncRetrying._run_wait

    def _zero_wait(self, retry_state):
        """Invoke original wait logic but force the computed delay to zero."""
        original_base_run_wait(self, retry_state)
        retry_state.upcoming_sleep = 0.0

    async def _zero_wait_async(self, retry_state):
        """Async equivalent that still computes retry metadata without sleeping."""
        await original_async_run_wait(self, retry_state)
        retry_state.upcoming_sleep = 0.0

    with patch("tenacity.nap.sleep", side_effect=_no_sleep):
        with patch.object(tenacity.BaseRetrying, "_run_wait", _zero_wait):
            with patch.object(tenacity.AsyncRetrying, "_run_wait", _zero_wait_async):
                yield


@pytest.fixture
def engine_config(tmp_path) -> EngineConfig:
    """Anonymous configuration with an isolated cache and no pacing."""
    return EngineConfig(cache_dir=tmp_path / "cache", request_delay=0.0, max_attempts=3)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def scraper(engine_config, fake_session, fake_clock) -> GoodreadsScraper:
    """Scraper wired to the fake session, a real on-disk cache and a fake clock."""
    cache = PageCache(engine_config.cache_dir, engine_config.cache_ttl_days)
    return GoodreadsScraper(engine_config, session=fake_session, cache=cache, store=EntityStore(), clock=fake_clock)
