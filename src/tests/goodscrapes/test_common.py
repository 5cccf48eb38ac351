#!/usr/bin/env python3
"""
Tests for shared helpers
"""

from unittest.mock import AsyncMock, patch

import pytest

from goodscrapes.common import RateLimiter, format_duration, parse_count, pluralize


class TestFormatting:
    def test_pluralize(self):
        assert pluralize(1, "member") == "member"
        assert pluralize(0, "member") == "members"
        assert pluralize(3, "member") == "members"

    def test_format_duration(self):
        assert format_duration(0.25) == "250ms"
        assert format_duration(1.5) == "1.5s"
        assert format_duration(150) == "2m 30s"
        assert format_duration(4500) == "1h 15m"

    def test_parse_count(self):
        assert parse_count("12,345") == 12345
        assert parse_count(" 7 ") == 7
        assert parse_count("") is None
        assert parse_count(None) is None
        assert parse_count("4.01") is None
        assert parse_count("n/a") is None


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_zero_interval_never_sleeps(self):
        limiter = RateLimiter(0)

        with patch("goodscrapes.common.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await limiter.acquire()
            await limiter.acquire()

        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_spacing_enforced_between_requests(self):
        """Second request within the interval should wait for the remainder."""
        limiter = RateLimiter(1.0)

        with (
            patch("goodscrapes.common.time.monotonic", side_effect=[100.0, 100.0, 100.25, 101.0]),
            patch("goodscrapes.common.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            await limiter.acquire()
            await limiter.acquire()

        mock_sleep.assert_awaited_once()
        assert mock_sleep.await_args.args[0] == pytest.approx(0.75)
