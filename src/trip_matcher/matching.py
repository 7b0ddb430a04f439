"""Full and partial date-window matching across respondents."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from loguru import logger

from .aggregation import build_day_counts
from .models import (
    Plan,
    Respondent,
    to_iso,
    validate_trip_length,
    validate_window,
)
from .window import (
    ConsecutiveRange,
    extract_runs,
    filter_min_length,
    iter_window_days,
    range_sort_key,
)

STATUS_AVAILABLE = "available"
STATUS_PARTIAL = "partial"
STATUS_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CompatibleDateRange:
    """Represent a date window annotated with how many people fit it.

    Attributes:
        start (date): First day of the window.
        end (date): Last day of the window.
        available_count (int): Respondents free on every day of the window.
        total_count (int): Total respondents.
    """

    start: date
    end: date
    available_count: int
    total_count: int

    @property
    def length_days(self) -> int:
        """Inclusive number of days in the window."""
        return (self.end - self.start).days + 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize using ISO day strings and camelCase keys."""
        return {
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "availableCount": self.available_count,
            "totalCount": self.total_count,
        }


@dataclass(frozen=True)
class PartialCompatibilityStats:
    """Represent best-effort matches when no window fits everyone.

    Attributes:
        partial_ranges (list[CompatibleDateRange]): Windows at the maximum
            achievable day count.
        respondents_with_sufficient_availability (int): Respondents whose own
            longest run reaches the trip length.
        total_respondents (int): Total respondents.
        blocking_respondents (list[str]): Names of respondents who never have
            enough consecutive free days.
    """

    partial_ranges: list[CompatibleDateRange] = field(default_factory=list)
    respondents_with_sufficient_availability: int = 0
    total_respondents: int = 0
    blocking_respondents: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using camelCase keys."""
        return {
            "partialRanges": [item.to_dict() for item in self.partial_ranges],
            "respondentsWithSufficientAvailability": (
                self.respondents_with_sufficient_availability
            ),
            "totalRespondents": self.total_respondents,
            "blockingRespondents": list(self.blocking_respondents),
        }


@dataclass(frozen=True)
class MatchResult:
    """Represent the outcome of matching one plan.

    Attributes:
        compatible_ranges (list[CompatibleDateRange]): Windows that fit everyone.
        partial (PartialCompatibilityStats | None): Near-miss details, only set
            when no window fits everyone.
    """

    compatible_ranges: list[CompatibleDateRange]
    partial: PartialCompatibilityStats | None = None

    @property
    def best_range(self) -> CompatibleDateRange | None:
        """First full match, else first partial match, else None."""
        if self.compatible_ranges:
            return self.compatible_ranges[0]
        if self.partial is not None and self.partial.partial_ranges:
            return self.partial.partial_ranges[0]
        return None


def _validate_inputs(start_range: date, end_range: date, num_days: int) -> None:
    """Reject a malformed window or trip length before any scan.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.
        num_days (int): Minimum window length in days.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
        InvalidTripLengthError: If ``num_days`` is not a positive integer.
    """
    validate_window(start_range, end_range)
    validate_trip_length(num_days)


def _annotate_ranges(
    runs: Iterable[ConsecutiveRange],
    available_count: int,
    total_count: int,
) -> list[CompatibleDateRange]:
    """Turn runs into ranges ordered longest first, then earliest first.

    Args:
        runs (Iterable[ConsecutiveRange]): Runs to annotate.
        available_count (int): Respondents free across each run.
        total_count (int): Total respondents.

    Returns:
        list[CompatibleDateRange]: Annotated, ordered ranges.
    """
    ranges = [
        CompatibleDateRange(
            start=run.start,
            end=run.end,
            available_count=available_count,
            total_count=total_count,
        )
        for run in runs
    ]
    ranges.sort(key=lambda item: range_sort_key(item.start, item.end))
    return ranges


def find_compatible_ranges(
    start_range: date,
    end_range: date,
    num_days: int,
    respondents: Sequence[Respondent],
) -> list[CompatibleDateRange]:
    """Find windows where every respondent is free on every day.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.
        num_days (int): Minimum window length in days.
        respondents (Sequence[Respondent]): Responses to match.

    Returns:
        list[CompatibleDateRange]: Matching windows, longest first, then
        earliest first. Empty when there are no respondents.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
        InvalidTripLengthError: If ``num_days`` is not a positive integer.
    """
    _validate_inputs(start_range, end_range, num_days)

    total_respondents = len(respondents)
    if total_respondents == 0:
        return []

    day_counts = build_day_counts(start_range, end_range, respondents)
    runs = extract_runs(
        day_counts,
        lambda day: day_counts[day] == total_respondents,
    )
    ranges = _annotate_ranges(
        filter_min_length(runs, num_days),
        available_count=total_respondents,
        total_count=total_respondents,
    )
    logger.debug(
        "Full match over {} day(s), {} respondent(s): {} of {} run(s) long enough",
        len(day_counts),
        total_respondents,
        len(ranges),
        len(runs),
    )
    return ranges


def longest_personal_run(
    available_dates: Iterable[date],
    start_range: date,
    end_range: date,
) -> int:
    """Find one respondent's longest streak of free days inside the window.

    Args:
        available_dates (Iterable[date]): Days the respondent is free.
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.

    Returns:
        int: Longest run length in days, 0 when no window day is free.
    """
    available_set = set(available_dates)
    longest = 0
    current = 0
    for day in iter_window_days(start_range, end_range):
        if day in available_set:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def find_partial_compatible_ranges(
    start_range: date,
    end_range: date,
    num_days: int,
    respondents: Sequence[Respondent],
) -> PartialCompatibilityStats:
    """Find the best achievable windows and who blocks a full match.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.
        num_days (int): Minimum window length in days.
        respondents (Sequence[Respondent]): Responses to match.

    Returns:
        PartialCompatibilityStats: Best windows and blocking respondents.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
        InvalidTripLengthError: If ``num_days`` is not a positive integer.
    """
    _validate_inputs(start_range, end_range, num_days)

    total_respondents = len(respondents)
    if total_respondents == 0:
        return PartialCompatibilityStats()

    blocking_respondents: list[str] = []
    sufficient_count = 0
    for respondent in respondents:
        streak = longest_personal_run(
            respondent.available_dates,
            start_range,
            end_range,
        )
        if streak >= num_days:
            sufficient_count += 1
        else:
            blocking_respondents.append(respondent.name)

    day_counts = build_day_counts(start_range, end_range, respondents)
    max_count = max(day_counts.values(), default=0)

    partial_ranges: list[CompatibleDateRange] = []
    if max_count > 0:
        runs = extract_runs(day_counts, lambda day: day_counts[day] == max_count)
        partial_ranges = _annotate_ranges(
            filter_min_length(runs, num_days),
            available_count=max_count,
            total_count=total_respondents,
        )

    logger.debug(
        "Partial match: max {}/{} free, {} range(s), {} blocking",
        max_count,
        total_respondents,
        len(partial_ranges),
        len(blocking_respondents),
    )
    return PartialCompatibilityStats(
        partial_ranges=partial_ranges,
        respondents_with_sufficient_availability=sufficient_count,
        total_respondents=total_respondents,
        blocking_respondents=blocking_respondents,
    )


def respondent_status(
    respondent: Respondent,
    plan: Plan,
    best_range: CompatibleDateRange | None = None,
) -> str:
    """Classify how well one respondent fits the plan.

    With a best range, the respondent is graded on that range's days.
    Without one, they are graded on their own longest run in the window.

    Args:
        respondent (Respondent): Respondent to classify.
        plan (Plan): Plan providing the window and trip length.
        best_range (CompatibleDateRange | None): Range to grade against.

    Returns:
        str: "available", "partial" or "unavailable".
    """
    if best_range is not None:
        range_days = list(iter_window_days(best_range.start, best_range.end))
        free_days = sum(1 for day in range_days if day in respondent.available_dates)
        if free_days == len(range_days):
            return STATUS_AVAILABLE
        if free_days > 0:
            return STATUS_PARTIAL
        return STATUS_UNAVAILABLE

    streak = longest_personal_run(
        respondent.available_dates,
        plan.start_range,
        plan.end_range,
    )
    if streak >= plan.num_days:
        return STATUS_AVAILABLE
    if streak > 0:
        return STATUS_PARTIAL
    return STATUS_UNAVAILABLE


def match_plan(plan: Plan) -> MatchResult:
    """Match a plan, falling back to partial matches when needed.

    Args:
        plan (Plan): Plan to match.

    Returns:
        MatchResult: Full matches, plus partial details when there are none.
    """
    compatible_ranges = find_compatible_ranges(
        plan.start_range,
        plan.end_range,
        plan.num_days,
        plan.respondents,
    )
    if compatible_ranges:
        return MatchResult(compatible_ranges=compatible_ranges)

    partial = find_partial_compatible_ranges(
        plan.start_range,
        plan.end_range,
        plan.num_days,
        plan.respondents,
    )
    return MatchResult(compatible_ranges=[], partial=partial)


class MatchCache:
    """Keep the most recent match result keyed by plan value.

    The plan is a frozen value, so an unchanged plan hits the cache and any
    change to the window, trip length or responses triggers a full
    recomputation.
    """

    def __init__(self) -> None:
        self._plan: Plan | None = None
        self._result: MatchResult | None = None

    def get(self, plan: Plan) -> MatchResult:
        """Return the match result for ``plan``, computing it if needed."""
        if self._result is not None and self._plan == plan:
            return self._result

        logger.debug("Recomputing matches for plan '{}'", plan.name)
        result = match_plan(plan)
        self._plan = plan
        self._result = result
        return result

    def clear(self) -> None:
        """Drop the cached entry."""
        self._plan = None
        self._result = None
