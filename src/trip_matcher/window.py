"""Calendar window iteration and consecutive-run extraction."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import date, timedelta

from .models import validate_window


@dataclass(frozen=True)
class ConsecutiveRange:
    """Represent an inclusive run of consecutive calendar days.

    Attributes:
        start (date): First day of the run.
        end (date): Last day of the run.
    """

    start: date
    end: date

    @property
    def length_days(self) -> int:
        """Inclusive number of days in the run."""
        return (self.end - self.start).days + 1


def iter_window_days(start_range: date, end_range: date) -> Iterator[date]:
    """Yield every day of an inclusive window in chronological order.

    The window is checked before the first day is produced.

    Args:
        start_range (date): Inclusive lower bound.
        end_range (date): Inclusive upper bound.

    Returns:
        Iterator[date]: Window days.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
    """
    validate_window(start_range, end_range)
    return _walk_days(start_range, end_range)


def _walk_days(start_range: date, end_range: date) -> Iterator[date]:
    """Step one day at a time through an already validated window.

    Args:
        start_range (date): Inclusive lower bound.
        end_range (date): Inclusive upper bound.

    Returns:
        Iterator[date]: Window days in order.
    """
    current_day = start_range
    while current_day <= end_range:
        yield current_day
        current_day += timedelta(days=1)


def extract_runs(
    days: Iterable[date],
    predicate: Callable[[date], bool],
) -> list[ConsecutiveRange]:
    """Extract maximal runs of days where the predicate holds.

    ``days`` must be consecutive and ordered; each is visited once.

    Args:
        days (Iterable[date]): Ordered window days.
        predicate (Callable[[date], bool]): In-run test for one day.

    Returns:
        list[ConsecutiveRange]: Runs in chronological order.
    """
    runs: list[ConsecutiveRange] = []
    run_start: date | None = None
    run_end: date | None = None

    for day in days:
        if predicate(day):
            if run_start is None:
                run_start = day
            run_end = day
            continue

        if run_start is not None and run_end is not None:
            runs.append(ConsecutiveRange(start=run_start, end=run_end))
        run_start = None
        run_end = None

    # A run touching the last window day is still open here.
    if run_start is not None and run_end is not None:
        runs.append(ConsecutiveRange(start=run_start, end=run_end))

    return runs


def filter_min_length(
    ranges: Iterable[ConsecutiveRange],
    num_days: int,
) -> list[ConsecutiveRange]:
    """Keep runs spanning at least ``num_days`` days.

    Args:
        ranges (Iterable[ConsecutiveRange]): Runs to filter.
        num_days (int): Minimum run length in days.

    Returns:
        list[ConsecutiveRange]: Runs long enough, in input order.
    """
    return [item for item in ranges if item.length_days >= num_days]


def range_sort_key(start: date, end: date) -> tuple[int, str]:
    """Build the longest-first, earliest-first ordering key for a range.

    The start is compared as its ISO string, which orders like the date
    because the format is fixed-width and zero-padded.

    Args:
        start (date): First day of the range.
        end (date): Last day of the range.

    Returns:
        tuple[int, str]: Negated inclusive length and ISO start.
    """
    return (-((end - start).days + 1), start.isoformat())

