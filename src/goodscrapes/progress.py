#!/usr/bin/env python3
"""
Progress events and reporting helpers.

Walkers emit ProgressEvent values; any reporting layer consumes them the same
way instead of computing percentages inside scraping loops.
"""

import logging
import time
from collections.abc import Callable
from typing import TypeAlias
from dataclasses import dataclass

from .common import format_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Snapshot of an enumeration: items done, best total estimate, seconds elapsed."""

    completed: int
    total: int | None
    elapsed: float

    @property
    def percent(self) -> float | None:
        if not self.total:
            return None
        return min(100.0, self.completed / self.total * 100)


ProgressCallback: TypeAlias = Callable[[ProgressEvent], None]


class SlidingWindowRateCalculator:
    """
    Calculate processing rates using a sliding window for more accurate ETAs.

    Only the most recent samples are used, so slow early pages (network, cold
    cache) do not skew the estimate once cached pages start flying by.
    """

    def __init__(self, window_size: int = 5):
        self.window_size = window_size
        self.samples: list[tuple[float, int]] = []  # (elapsed, completed)

    def add_sample(self, elapsed: float, completed: int) -> None:
        self.samples.append((elapsed, completed))
        if len(self.samples) > self.window_size:
            self.samples.pop(0)

    def get_rate(self) -> float:
        """Items per second over the window (0 until two samples exist)."""
        if len(self.samples) < 2:
            return 0.0
        oldest_time, oldest_count = self.samples[0]
        newest_time, newest_count = self.samples[-1]
        return (newest_count - oldest_count) / max(1e-6, newest_time - oldest_time)


class ProgressMeter:
    """ProgressCallback that logs throttled progress lines with an ETA."""

    def __init__(self, label: str, interval: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.label = label
        self.interval = interval
        self.rate_calculator = SlidingWindowRateCalculator(window_size=5)
        self._clock = clock
        self._last_report: float | None = None
        self._finish_reported = False
        self.last_event: ProgressEvent | None = None

    def __call__(self, event: ProgressEvent) -> None:
        self.last_event = event
        self.rate_calculator.add_sample(event.elapsed, event.completed)

        now = self._clock()
        finished = event.total is not None and event.completed >= event.total
        # Completion bypasses the throttle only once
        force = finished and not self._finish_reported
        if not force and self._last_report is not None and now - self._last_report < self.interval:
            return
        if finished:
            self._finish_reported = True
        self._last_report = now
        logger.info(f"Progress: {self.describe(event)}")

    def describe(self, event: ProgressEvent) -> str:
        if event.percent is not None:
            progress_part = f"{event.completed:,}/{event.total:,} {self.label} ({event.percent:.0f}%)"
        else:
            progress_part = f"{event.completed:,} {self.label}"

        eta_text = ""
        rate = self.rate_calculator.get_rate()
        if rate > 0 and event.total and event.total > event.completed:
            eta_text = f" (ETA: {format_duration((event.total - event.completed) / rate)})"

        return f"{progress_part} - elapsed: {format_duration(event.elapsed)}{eta_text}"
