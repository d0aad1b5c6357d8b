# src/bucket_mirror/progress.py
"""
Periodic progress reporting for a running sync.

`ProgressReporter` runs on its own daemon thread, independent of the worker
pool, and prints a line such as::

    [----->              ]	[ 6/20 ]	Elapsed: 00:00:04	ETA: 00:00:09

It reads the shared counters without synchronizing with the workers; a
slightly stale count is fine for a display.
"""

import logging
import math
import threading
import time
from types import TracebackType
from typing import Callable, Optional, Type

import click
from rich.console import Console

from bucket_mirror.models import SyncCounters

logger: logging.Logger = logging.getLogger(__name__)

BAR_SEGMENTS: int = 20
UNKNOWN_ETA: str = "unknown"


def format_duration(seconds: float) -> str:
    """
    Formats a duration as `HH:MM:SS`. Hours are not wrapped at 24.

    Args:
        seconds (float): The duration; negative values are clamped to zero.

    Returns:
        str: The formatted duration.
    """
    total: int = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_bytes(num_bytes: int) -> str:
    """
    Formats a byte count with SI prefixes, e.g. `1.5 kB` or `3.2 GB`.

    Args:
        num_bytes (int): The number of bytes.

    Returns:
        str: A human-readable size.
    """
    if num_bytes < 1000:
        return f"{num_bytes} B"
    value: float = float(num_bytes)
    for prefix in "kMGTP":
        value /= 1000.0
        if value < 1000.0:
            return f"{value:.1f} {prefix}B"
    return f"{value / 1000.0:.1f} EB"


def render_bar(fraction: float, segments: int = BAR_SEGMENTS) -> str:
    """
    Renders a fixed-width bar with `floor(fraction * segments)` filled cells.

    Filled cells are dashes with an arrow head on the last one, the rest is
    padded with spaces.

    Args:
        fraction (float): Completion between 0 and 1; clamped.
        segments (int): Bar width.

    Returns:
        str: The bar without its enclosing brackets.
    """
    filled: int = max(0, min(segments, math.floor(fraction * segments)))
    if filled == 0:
        return " " * segments
    return "-" * (filled - 1) + ">" + " " * (segments - filled)


def estimate_remaining(elapsed_s: float, fraction: float) -> Optional[float]:
    """
    Linearly extrapolates the remaining time.

    Args:
        elapsed_s (float): Time spent so far.
        fraction (float): Completion between 0 and 1.

    Returns:
        Optional[float]: Seconds remaining, or None when nothing is done yet.
    """
    if fraction <= 0:
        return None
    return elapsed_s / fraction - elapsed_s


def render_progress_line(copied: int, total: int, elapsed_s: float) -> str:
    """
    Builds one progress line.

    Args:
        copied (int): Objects copied so far.
        total (int): Objects in the inventory.
        elapsed_s (float): Seconds since the session started.

    Returns:
        str: The tab-separated progress line.
    """
    fraction: float = copied / total if total > 0 else 0.0
    remaining: Optional[float] = estimate_remaining(elapsed_s, fraction)
    eta: str = UNKNOWN_ETA if remaining is None else format_duration(remaining)
    return (
        f"[{render_bar(fraction)}]\t[ {copied}/{total} ]"
        f"\tElapsed: {format_duration(elapsed_s)}\tETA: {eta}"
    )


class ProgressReporter:
    """
    A background ticker that prints progress every `interval_s` seconds.

    Use it as a context manager so the thread is stopped on every exit path::

        with ProgressReporter(counters, total_count=inventory.total_count):
            coordinator.run(pool.run_round)
    """

    def __init__(
        self,
        counters: SyncCounters,
        total_count: int,
        interval_s: float = 2.0,
        start_time: Optional[float] = None,
        console: Optional[Console] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the reporter.

        Args:
            counters (SyncCounters): The session counters to read.
            total_count (int): Objects in the full inventory.
            interval_s (float): Seconds between ticks.
            start_time (float, optional): Session start on the `clock` scale;
                defaults to the time `start()` is called.
            console (Console, optional): Where lines are printed.
            clock (Callable[[], float]): Monotonic time source.
        """
        self._counters: SyncCounters = counters
        self._total_count: int = total_count
        self._interval_s: float = interval_s
        self._start_time: Optional[float] = start_time
        self._console: Console = console or Console()
        self._clock: Callable[[], float] = clock
        self._stop_event: threading.Event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def render(self) -> str:
        """Renders the current progress line without printing it."""
        start: float = self._start_time if self._start_time is not None else self._clock()
        return render_progress_line(
            self._counters.items_copied,
            self._total_count,
            self._clock() - start,
        )

    def tick(self) -> None:
        """Prints one progress line. Tabs are written as-is."""
        click.echo(self.render(), file=self._console.file)

    def start(self) -> None:
        """Starts the ticker thread. The first line is printed immediately."""
        if self._thread is not None:
            return
        if self._start_time is None:
            self._start_time = self._clock()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="progress-reporter", daemon=True
        )
        self._thread.start()
        logger.debug(f"Progress reporter started (every {self._interval_s}s).")

    def stop(self) -> None:
        """Stops the ticker and prints a final line. Safe to call repeatedly."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join()
        self._thread = None
        try:
            self.tick()
        except Exception:
            logger.exception("Failed to render final progress line.")
        logger.debug("Progress reporter stopped.")

    def _run(self) -> None:
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception("Failed to render progress line.")
            if self._stop_event.wait(self._interval_s):
                break

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.stop()
