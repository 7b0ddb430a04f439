"""Window scoring and prioritized recommendations for a plan."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from loguru import logger

from .models import Plan, Respondent, to_iso, validate_trip_length, validate_window
from .window import iter_window_days

SHIFT_EARLIER = "earlier"
SHIFT_LATER = "later"

STATUS_THRESHOLDS = (
    (100, "perfect"),
    (80, "great"),
    (67, "good"),
    (50, "possible"),
)
STATUS_UNLIKELY = "unlikely"

PRIORITY_LABELS = {
    1: "Perfect Match",
    2: "Shift Window",
    3: "Single Blocker",
    4: "Shorter Trip",
    5: "Schedule Conflict",
    6: "Good Enough",
    7: "Expand Range",
    8: "Multiple Options",
    9: "General",
}

MAX_SHORTER_TRIP_REDUCTION = 3
CONSTRAINER_TOP_WINDOWS = 5
CONSTRAINER_MIN_BLOCKED = 3
GOOD_ENOUGH_PERCENTAGE = 80
COMPARABLE_PERCENTAGE_SPREAD = 5
CRAMPED_RANGE_FACTOR = 1.5
MAX_LISTED_WINDOWS = 3


@dataclass(frozen=True)
class BlockerInfo:
    """Represent one respondent who cannot make a scored window.

    Attributes:
        respondent_id (str): Respondent identifier.
        name (str): Display name.
        missing_dates (list[date]): Window days the respondent is not free,
            in chronological order.
        has_adjacent_before (bool): Free on the day before the window, inside
            the plan window.
        has_adjacent_after (bool): Free on the day after the window, inside
            the plan window.
        shift_direction (str | None): "earlier", "later" or None.
        shift_days (int): Days to shift the window, 0 without a direction.
    """

    respondent_id: str
    name: str
    missing_dates: list[date]
    has_adjacent_before: bool
    has_adjacent_after: bool
    shift_direction: str | None
    shift_days: int

    @property
    def missing_count(self) -> int:
        """Number of window days the respondent is missing."""
        return len(self.missing_dates)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using ISO day strings and camelCase keys."""
        return {
            "id": self.respondent_id,
            "name": self.name,
            "missingDates": [to_iso(day) for day in self.missing_dates],
            "missingCount": self.missing_count,
            "hasAdjacentBefore": self.has_adjacent_before,
            "hasAdjacentAfter": self.has_adjacent_after,
            "shiftDirection": self.shift_direction,
            "shiftDays": self.shift_days,
        }


@dataclass(frozen=True)
class ScoredWindow:
    """Represent a trip-length window scored by who can make it.

    Attributes:
        start (date): First day of the window.
        end (date): Last day of the window.
        available_count (int): Respondents free on every window day.
        total_count (int): Total respondents.
        percentage (int): Rounded share of respondents free, 0 to 100.
        blockers (list[BlockerInfo]): Respondents missing at least one day.
    """

    start: date
    end: date
    available_count: int
    total_count: int
    percentage: int
    blockers: list[BlockerInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using ISO day strings and camelCase keys."""
        return {
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "availableCount": self.available_count,
            "totalCount": self.total_count,
            "percentage": self.percentage,
            "blockers": [blocker.to_dict() for blocker in self.blockers],
        }


@dataclass(frozen=True)
class AlternativeWindow:
    """Represent a simplified window listed next to a recommendation.

    Attributes:
        start (date): First day of the window.
        end (date): Last day of the window.
        percentage (int): Rounded share of respondents free.
        available_count (int): Respondents free on every window day.
        total_count (int): Total respondents.
        missing (list[str]): Names of respondents who cannot make it.
    """

    start: date
    end: date
    percentage: int
    available_count: int
    total_count: int
    missing: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using ISO day strings and camelCase keys."""
        return {
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "percentage": self.percentage,
            "availableCount": self.available_count,
            "totalCount": self.total_count,
            "missing": list(self.missing),
        }


@dataclass(frozen=True)
class ShorterTripSuggestion:
    """Represent a shorter trip length that fits everyone.

    Attributes:
        duration (int): Shorter trip length in days.
        window_count (int): Number of windows everyone can make at that length.
        windows (list[AlternativeWindow]): Up to three of those windows.
    """

    duration: int
    window_count: int
    windows: list[AlternativeWindow]

    def to_dict(self) -> dict[str, Any]:
        """Serialize using camelCase keys."""
        return {
            "duration": self.duration,
            "windowCount": self.window_count,
            "windows": [window.to_dict() for window in self.windows],
        }


@dataclass(frozen=True)
class Constrainer:
    """Represent a respondent whose few free days block most top windows.

    Attributes:
        respondent_id (str): Respondent identifier.
        name (str): Display name.
        available_days (int): Free days inside the plan window.
    """

    respondent_id: str
    name: str
    available_days: int


@dataclass(frozen=True)
class Recommendation:
    """Represent one matched recommendation rule.

    Attributes:
        priority (int): Rule priority, 1 is highest.
        status (str): Status graded from the best window percentage.
        headline (str): Short headline.
        detail (str): One-line detail.
        recommendation (str): Actionable advice.
        best_window (ScoredWindow | None): Best scored window, if any.
        alternative_windows (list[AlternativeWindow]): Other windows to show.
        shorter_trip (ShorterTripSuggestion | None): Shorter trip that fits
            everyone, for the shorter-trip rule.
        blocker_id (str | None): Single blocker id, for the blocker rules.
        blocker_shift_direction (str | None): Suggested shift for the blocker.
        constraining_person (str | None): Formatted constrainer names.
        constraining_person_ids (list[str]): Constrainer ids.
    """

    priority: int
    status: str
    headline: str
    detail: str
    recommendation: str
    best_window: ScoredWindow | None = None
    alternative_windows: list[AlternativeWindow] = field(default_factory=list)
    shorter_trip: ShorterTripSuggestion | None = None
    blocker_id: str | None = None
    blocker_shift_direction: str | None = None
    constraining_person: str | None = None
    constraining_person_ids: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        """Short label for the matched rule."""
        return PRIORITY_LABELS[self.priority]

    def to_dict(self) -> dict[str, Any]:
        """Serialize using camelCase keys."""
        return {
            "priority": self.priority,
            "label": self.label,
            "status": self.status,
            "headline": self.headline,
            "detail": self.detail,
            "recommendation": self.recommendation,
            "bestWindow": (
                self.best_window.to_dict() if self.best_window is not None else None
            ),
            "alternativeWindows": [
                window.to_dict() for window in self.alternative_windows
            ],
            "shorterTripSuggestion": (
                self.shorter_trip.to_dict() if self.shorter_trip is not None else None
            ),
            "blockerId": self.blocker_id,
            "blockerShiftDirection": self.blocker_shift_direction,
            "constrainingPerson": self.constraining_person,
            "constrainingPersonIds": list(self.constraining_person_ids),
        }


@dataclass(frozen=True)
class RecommendationResult:
    """Represent the primary recommendation and the other matched rules.

    Attributes:
        primary (Recommendation): Highest-priority matched rule.
        alternatives (list[Recommendation]): Remaining matched rules in
            priority order.
    """

    primary: Recommendation
    alternatives: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        """Serialize using camelCase keys."""
        return {
            "primary": self.primary.to_dict(),
            "alternatives": [item.to_dict() for item in self.alternatives],
        }


@dataclass(frozen=True)
class RuleContext:
    """Represent everything the recommendation rules look at.

    Attributes:
        plan (Plan): Plan being evaluated.
        scored_windows (list[ScoredWindow]): Trip-length windows, best first.
        shorter_trip (ShorterTripSuggestion | None): Shorter fallback, if any.
        constrainers (list[Constrainer]): Respondents limiting top windows.
    """

    plan: Plan
    scored_windows: list[ScoredWindow]
    shorter_trip: ShorterTripSuggestion | None
    constrainers: list[Constrainer]

    @property
    def best_window(self) -> ScoredWindow | None:
        """First scored window, or None when no window fits the plan."""
        return self.scored_windows[0] if self.scored_windows else None

    @property
    def total_count(self) -> int:
        """Total respondents."""
        return len(self.plan.respondents)

    @property
    def best_percentage(self) -> int:
        """Best window percentage, 0 without a best window."""
        best_window = self.best_window
        return best_window.percentage if best_window is not None else 0


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Pick the singular or plural form of a word for a count.

    Args:
        count (int): Quantity being described.
        singular (str): Singular form.
        plural (str | None): Plural form. Defaults to ``singular + "s"``.

    Returns:
        str: Word form matching the count.
    """
    if count == 1:
        return singular
    return plural if plural is not None else f"{singular}s"


def format_name_list(names: Sequence[str]) -> str:
    """Join names for prose, showing at most three.

    Args:
        names (Sequence[str]): Display names.

    Returns:
        str: Names joined as "A", "A and B", "A, B, and C" or
        "A, B, C, and N others".
    """
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} and {names[1]}"
    if len(names) == 3:
        return f"{names[0]}, {names[1]}, and {names[2]}"

    remaining = len(names) - 3
    return (
        f"{', '.join(names[:3])}, and {remaining} "
        f"{pluralize(remaining, 'other')}"
    )


def status_from_percentage(percentage: int) -> str:
    """Grade a window percentage into a recommendation status.

    Args:
        percentage (int): Share of respondents free, 0 to 100.

    Returns:
        str: "perfect", "great", "good", "possible" or "unlikely".
    """
    for threshold, status in STATUS_THRESHOLDS:
        if percentage >= threshold:
            return status
    return STATUS_UNLIKELY


def _round_percentage(available_count: int, total_count: int) -> int:
    """Round a share to a whole percentage, halves rounding up.

    Args:
        available_count (int): Respondents free.
        total_count (int): Total respondents, greater than 0.

    Returns:
        int: Whole percentage.
    """
    return (available_count * 200 + total_count) // (2 * total_count)


def _format_day(day: date) -> str:
    """Format a day as a short month and day, e.g. "Jun 3".

    Args:
        day (date): Day to format.

    Returns:
        str: Short label.
    """
    return f"{day:%b} {day.day}"


def _format_missing_dates(days: Sequence[date]) -> str:
    """Describe a set of missing days as a single day or a span.

    Args:
        days (Sequence[date]): Missing days.

    Returns:
        str: "Jun 3" or "Jun 3 - Jun 5", empty for no days.
    """
    if not days:
        return ""
    if len(days) == 1:
        return _format_day(days[0])
    ordered = sorted(days)
    return f"{_format_day(ordered[0])} - {_format_day(ordered[-1])}"


def _format_window_short(start: date, end: date) -> str:
    """Describe a window compactly, e.g. "Jun 3-5" or "Jun 30 - Jul 2".

    Args:
        start (date): First day.
        end (date): Last day.

    Returns:
        str: Compact label.
    """
    if (start.year, start.month) == (end.year, end.month):
        return f"{start:%b} {start.day}-{end.day}"
    return f"{_format_day(start)} - {_format_day(end)}"


def generate_windows(
    start_range: date,
    end_range: date,
    num_days: int,
) -> list[tuple[date, date]]:
    """List every window of exactly ``num_days`` days inside the plan window.

    Args:
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.
        num_days (int): Window length in days.

    Returns:
        list[tuple[date, date]]: ``(start, end)`` pairs in chronological
        order, empty when the plan window is shorter than ``num_days``.
    """
    plan_days = list(iter_window_days(start_range, end_range))
    return [
        (plan_days[index], plan_days[index + num_days - 1])
        for index in range(len(plan_days) - num_days + 1)
    ]


def analyze_blocker(
    respondent: Respondent,
    window_days: Sequence[date],
    missing_dates: Sequence[date],
    start_range: date,
    end_range: date,
) -> BlockerInfo:
    """Work out whether shifting a window could include a blocker.

    A shift toward an adjacent free day is suggested by the number of missing
    days. When the missing days sit at the end of the window and the day
    before is free, the window moves earlier; when they sit at the start and
    the day after is free, it moves later.

    Args:
        respondent (Respondent): Respondent missing part of the window.
        window_days (Sequence[date]): Window days in order.
        missing_dates (Sequence[date]): Window days the respondent is not free.
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.

    Returns:
        BlockerInfo: Missing days and suggested shift.
    """
    day_before = window_days[0] - timedelta(days=1)
    day_after = window_days[-1] + timedelta(days=1)
    has_adjacent_before = (
        day_before >= start_range and day_before in respondent.available_dates
    )
    has_adjacent_after = (
        day_after <= end_range and day_after in respondent.available_dates
    )

    shift_direction: str | None = None
    shift_days = 0
    if has_adjacent_before or has_adjacent_after:
        first_missing = window_days.index(missing_dates[0])
        last_missing = window_days.index(missing_dates[-1])
        if has_adjacent_before and last_missing == len(window_days) - 1:
            shift_direction = SHIFT_EARLIER
        elif has_adjacent_after and first_missing == 0:
            shift_direction = SHIFT_LATER
        elif has_adjacent_before:
            shift_direction = SHIFT_EARLIER
        else:
            shift_direction = SHIFT_LATER
        shift_days = len(missing_dates)

    return BlockerInfo(
        respondent_id=respondent.respondent_id,
        name=respondent.name,
        missing_dates=list(missing_dates),
        has_adjacent_before=has_adjacent_before,
        has_adjacent_after=has_adjacent_after,
        shift_direction=shift_direction,
        shift_days=shift_days,
    )


def _score_window(
    window_start: date,
    window_end: date,
    respondents: Sequence[Respondent],
    start_range: date,
    end_range: date,
) -> ScoredWindow:
    """Score one window by how many respondents are free for all of it.

    Args:
        window_start (date): First window day.
        window_end (date): Last window day.
        respondents (Sequence[Respondent]): Responses, at least one.
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.

    Returns:
        ScoredWindow: Score and blockers in respondent order.
    """
    window_days = list(iter_window_days(window_start, window_end))
    available_count = 0
    blockers: list[BlockerInfo] = []
    for respondent in respondents:
        missing_dates = [
            day for day in window_days if day not in respondent.available_dates
        ]
        if not missing_dates:
            available_count += 1
            continue
        blockers.append(
            analyze_blocker(
                respondent,
                window_days,
                missing_dates,
                start_range,
                end_range,
            )
        )

    total_count = len(respondents)
    return ScoredWindow(
        start=window_start,
        end=window_end,
        available_count=available_count,
        total_count=total_count,
        percentage=_round_percentage(available_count, total_count),
        blockers=blockers,
    )


def score_windows(
    start_range: date,
    end_range: date,
    num_days: int,
    respondents: Sequence[Respondent],
) -> list[ScoredWindow]:
    """Score every trip-length window of the plan.

    Args:
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.
        num_days (int): Window length in days.
        respondents (Sequence[Respondent]): Responses to score against.

    Returns:
        list[ScoredWindow]: Windows by descending percentage, then ascending
        start. Empty when there are no respondents.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
        InvalidTripLengthError: If ``num_days`` is not a positive integer.
    """
    validate_window(start_range, end_range)
    validate_trip_length(num_days)
    if not respondents:
        return []

    scored = [
        _score_window(window_start, window_end, respondents, start_range, end_range)
        for window_start, window_end in generate_windows(
            start_range,
            end_range,
            num_days,
        )
    ]
    scored.sort(key=lambda item: (-item.percentage, item.start.isoformat()))
    return scored


def validate_shifted_window(
    window_start: date,
    shift_days: int,
    direction: str,
    start_range: date,
    end_range: date,
    num_days: int,
) -> bool:
    """Check that a shifted trip-length window stays inside the plan window.

    Args:
        window_start (date): Start of the window before shifting.
        shift_days (int): Days to shift by.
        direction (str): "earlier" or "later".
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.
        num_days (int): Window length in days.

    Returns:
        bool: True when the shifted window fits.
    """
    offset = -shift_days if direction == SHIFT_EARLIER else shift_days
    shifted_start = window_start + timedelta(days=offset)
    shifted_end = shifted_start + timedelta(days=num_days - 1)
    return shifted_start >= start_range and shifted_end <= end_range


def to_alternative_window(window: ScoredWindow) -> AlternativeWindow:
    """Simplify a scored window for listing.

    Args:
        window (ScoredWindow): Scored window.

    Returns:
        AlternativeWindow: Window with blocker names only.
    """
    return AlternativeWindow(
        start=window.start,
        end=window.end,
        percentage=window.percentage,
        available_count=window.available_count,
        total_count=window.total_count,
        missing=[blocker.name for blocker in window.blockers],
    )


def find_shorter_perfect_windows(
    respondents: Sequence[Respondent],
    start_range: date,
    end_range: date,
    num_days: int,
) -> ShorterTripSuggestion | None:
    """Find the longest shorter trip, up to three days shorter, that fits everyone.

    Args:
        respondents (Sequence[Respondent]): Responses to score against.
        start_range (date): Inclusive plan start.
        end_range (date): Inclusive plan end.
        num_days (int): Requested trip length.

    Returns:
        ShorterTripSuggestion | None: First shorter length with at least one
        window everyone can make, or None.
    """
    shortest = max(1, num_days - MAX_SHORTER_TRIP_REDUCTION)
    for duration in range(num_days - 1, shortest - 1, -1):
        perfect_windows = [
            window
            for window in score_windows(start_range, end_range, duration, respondents)
            if window.percentage == 100
        ]
        if perfect_windows:
            return ShorterTripSuggestion(
                duration=duration,
                window_count=len(perfect_windows),
                windows=[
                    to_alternative_window(window)
                    for window in perfect_windows[:MAX_LISTED_WINDOWS]
                ],
            )
    return None


def find_constraining_people(
    top_windows: Sequence[ScoredWindow],
    respondents: Sequence[Respondent],
    plan: Plan,
) -> list[Constrainer]:
    """Find respondents who block most top windows and have few free days.

    A respondent qualifies when they block at least three of the given
    windows and have fewer free days inside the plan window than the trip
    length.

    Args:
        top_windows (Sequence[ScoredWindow]): Best scored windows.
        respondents (Sequence[Respondent]): Responses in the plan.
        plan (Plan): Plan providing the window and trip length.

    Returns:
        list[Constrainer]: Constrainers with the fewest free days first.
    """
    if len(top_windows) < CONSTRAINER_MIN_BLOCKED:
        return []

    blocked_counts: dict[str, int] = {}
    for window in top_windows:
        for blocker in window.blockers:
            blocked_counts[blocker.respondent_id] = (
                blocked_counts.get(blocker.respondent_id, 0) + 1
            )

    by_id = {respondent.respondent_id: respondent for respondent in respondents}
    constrainers: list[Constrainer] = []
    for respondent_id, count in blocked_counts.items():
        if count < CONSTRAINER_MIN_BLOCKED:
            continue
        respondent = by_id[respondent_id]
        available_days = sum(
            1
            for day in respondent.available_dates
            if plan.start_range <= day <= plan.end_range
        )
        if available_days < plan.num_days:
            constrainers.append(
                Constrainer(
                    respondent_id=respondent_id,
                    name=respondent.name,
                    available_days=available_days,
                )
            )

    constrainers.sort(key=lambda item: item.available_days)
    return constrainers


def _rule_perfect(context: RuleContext) -> Recommendation | None:
    """Recommend booking when the best window fits everyone.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    best_window = context.best_window
    if best_window is None or best_window.percentage != 100:
        return None
    return Recommendation(
        priority=1,
        status=status_from_percentage(best_window.percentage),
        headline="Pack your bags!",
        detail=f"Everyone's in ({context.total_count}/{context.total_count})",
        recommendation="You found the sweet spot, time to book!",
        best_window=best_window,
    )


def _single_blocker(context: RuleContext) -> BlockerInfo | None:
    """Return the only blocker of the best window, if there is exactly one.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        BlockerInfo | None: The single blocker, or None.
    """
    best_window = context.best_window
    if best_window is None or len(best_window.blockers) != 1:
        return None
    return best_window.blockers[0]


def _has_valid_shift(context: RuleContext, blocker: BlockerInfo) -> bool:
    """Check that the blocker's suggested shift keeps the window in the plan.

    Args:
        context (RuleContext): Rule inputs, with a best window.
        blocker (BlockerInfo): Single blocker of the best window.

    Returns:
        bool: True when a shift is suggested and fits.
    """
    best_window = context.best_window
    if best_window is None or blocker.shift_direction is None:
        return False
    if blocker.shift_days <= 0:
        return False
    return validate_shifted_window(
        best_window.start,
        blocker.shift_days,
        blocker.shift_direction,
        context.plan.start_range,
        context.plan.end_range,
        context.plan.num_days,
    )


def _rule_shift_window(context: RuleContext) -> Recommendation | None:
    """Suggest shifting the best window to take in its single blocker.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    blocker = _single_blocker(context)
    best_window = context.best_window
    if blocker is None or best_window is None or not _has_valid_shift(context, blocker):
        return None
    return Recommendation(
        priority=2,
        status=status_from_percentage(best_window.percentage),
        headline="So close!",
        detail=(
            f"{best_window.available_count}/{context.total_count} travelers "
            "ready to go"
        ),
        recommendation=(
            f"{blocker.name} can't make "
            f"{_format_missing_dates(blocker.missing_dates)}, but shifting "
            f"{blocker.shift_days} {pluralize(blocker.shift_days, 'day')} "
            f"{blocker.shift_direction} could get everyone on board."
        ),
        best_window=best_window,
        blocker_id=blocker.respondent_id,
        blocker_shift_direction=blocker.shift_direction,
    )


def _rule_single_blocker(context: RuleContext) -> Recommendation | None:
    """Point at the best window's single blocker when no shift fits.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    blocker = _single_blocker(context)
    best_window = context.best_window
    if blocker is None or best_window is None or _has_valid_shift(context, blocker):
        return None
    return Recommendation(
        priority=3,
        status=status_from_percentage(best_window.percentage),
        headline="Almost there!",
        detail=(
            f"{best_window.available_count}/{context.total_count} travelers "
            "ready to go"
        ),
        recommendation=(
            f"{blocker.name} can't make "
            f"{_format_missing_dates(blocker.missing_dates)}. "
            "Maybe they can shuffle things around?"
        ),
        best_window=best_window,
        blocker_id=blocker.respondent_id,
    )


def _rule_shorter_trip(context: RuleContext) -> Recommendation | None:
    """Suggest a shorter trip when one fits everyone.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    shorter_trip = context.shorter_trip
    if shorter_trip is None:
        return None

    num_days = context.plan.num_days
    if context.best_window is not None:
        detail = (
            f"{num_days} days is tricky, but {shorter_trip.duration} days "
            "works perfectly"
        )
    else:
        detail = (
            f"{num_days} days doesn't quite fit, but {shorter_trip.duration} "
            "days does"
        )
    if shorter_trip.window_count == 1:
        window_count_text = "There's a"
    else:
        window_count_text = f"There are {shorter_trip.window_count}"

    return Recommendation(
        priority=4,
        status=status_from_percentage(context.best_percentage),
        headline="Quick trip, anyone?",
        detail=detail,
        recommendation=(
            f"Good news! {window_count_text} perfect {shorter_trip.duration}-day "
            f"{pluralize(shorter_trip.window_count, 'window')} where "
            "everyone's free."
        ),
        best_window=context.best_window,
        alternative_windows=list(shorter_trip.windows),
        shorter_trip=shorter_trip,
    )


def _rule_schedule_conflict(context: RuleContext) -> Recommendation | None:
    """Name respondents whose few free days block most top windows.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    constrainers = context.constrainers
    if not constrainers:
        return None

    best_window = context.best_window
    if len(constrainers) == 1:
        only = constrainers[0]
        recommendation = (
            f"{only.name} only has {only.available_days} "
            f"{pluralize(only.available_days, 'day')} free, which limits the "
            "options. Worth checking if they can open up more dates!"
        )
    else:
        recommendation = (
            "Some people have limited availability. Check the calendar to "
            "resolve scheduling conflicts!"
        )

    return Recommendation(
        priority=5,
        status=status_from_percentage(context.best_percentage),
        headline="We have a majority!",
        detail=(
            f"Best window fits {best_window.available_count}/"
            f"{context.total_count} travelers"
            if best_window is not None
            else "Still looking for overlap"
        ),
        recommendation=recommendation,
        best_window=best_window,
        constraining_person=format_name_list([item.name for item in constrainers]),
        constraining_person_ids=[item.respondent_id for item in constrainers],
    )


def _rule_good_enough(context: RuleContext) -> Recommendation | None:
    """Accept a best window that most respondents can make.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    best_window = context.best_window
    if best_window is None or best_window.percentage < GOOD_ENOUGH_PERCENTAGE:
        return None
    alternatives = [
        to_alternative_window(window)
        for window in context.scored_windows
        if window.start != best_window.start
    ][:MAX_LISTED_WINDOWS]
    return Recommendation(
        priority=6,
        status=status_from_percentage(best_window.percentage),
        headline="Looking good!",
        detail=(
            f"{best_window.available_count}/{context.total_count} travelers "
            "can make it"
        ),
        recommendation=(
            "This is your best window! You could also try tweaking the date "
            "range to get everyone aligned."
        ),
        best_window=best_window,
        alternative_windows=alternatives,
    )


def _rule_expand_range(context: RuleContext) -> Recommendation | None:
    """Suggest a wider date range when the plan window is cramped.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    range_days = context.plan.window_length_days
    num_days = context.plan.num_days
    if range_days >= num_days * CRAMPED_RANGE_FACTOR:
        return None
    best_window = context.best_window
    return Recommendation(
        priority=7,
        status=status_from_percentage(context.best_percentage),
        headline="Feeling cramped",
        detail=(
            f"Best window fits {best_window.available_count}/"
            f"{context.total_count} travelers"
            if best_window is not None
            else "No windows found yet"
        ),
        recommendation=(
            f"Fitting {num_days} days into a {range_days}-day window is tight! "
            "Try expanding the date range for more flexibility."
        ),
        best_window=best_window,
    )


def _comparable_windows(context: RuleContext) -> list[ScoredWindow]:
    """List the top two windows scoring close to the best one.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        list[ScoredWindow]: Up to two windows within five points of the best.
    """
    best_percentage = context.best_percentage
    return [
        window
        for window in context.scored_windows
        if abs(window.percentage - best_percentage) <= COMPARABLE_PERCENTAGE_SPREAD
    ][:2]


def _rule_multiple_options(context: RuleContext) -> Recommendation | None:
    """Compare two close windows blocked by different people.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    best_window = context.best_window
    # A full match already has its own rule and no blockers to compare.
    if best_window is None or best_window.percentage == 100:
        return None
    comparable = _comparable_windows(context)
    if len(comparable) < 2:
        return None
    window_a, window_b = comparable
    blockers_a = [blocker.name for blocker in window_a.blockers]
    blockers_b = [blocker.name for blocker in window_b.blockers]
    if set(blockers_a) == set(blockers_b):
        return None

    return Recommendation(
        priority=8,
        status=status_from_percentage(best_window.percentage),
        headline="Decisions, decisions!",
        detail=(
            f"{best_window.available_count}/{context.total_count} can make "
            "either window"
        ),
        recommendation=(
            f"{_format_window_short(window_a.start, window_a.end)} doesn't work "
            f"for {format_name_list(blockers_a)}. "
            f"{_format_window_short(window_b.start, window_b.end)} doesn't work "
            f"for {format_name_list(blockers_b)}. See if either group can budge!"
        ),
        best_window=best_window,
        alternative_windows=[to_alternative_window(window) for window in comparable],
    )


def _rule_general(context: RuleContext) -> Recommendation | None:
    """Fall back to general guidance; always matches.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        Recommendation | None: Recommendation when the rule matches.
    """
    best_window = context.best_window
    if context.best_percentage > 0:
        recommendation = (
            "The heatmap shows where people overlap. Play with the dates to "
            "find a better fit!"
        )
    else:
        recommendation = (
            "No overlap yet. Wait for more responses or try different dates."
        )
    return Recommendation(
        priority=9,
        status=status_from_percentage(context.best_percentage),
        headline="Still exploring",
        detail=(
            f"Best window fits {best_window.available_count}/"
            f"{context.total_count} travelers"
            if best_window is not None
            else "Waiting for the stars to align"
        ),
        recommendation=recommendation,
        best_window=best_window,
        alternative_windows=[
            to_alternative_window(window)
            for window in context.scored_windows[:MAX_LISTED_WINDOWS]
        ],
    )


RULES: tuple[Callable[[RuleContext], Recommendation | None], ...] = (
    _rule_perfect,
    _rule_shift_window,
    _rule_single_blocker,
    _rule_shorter_trip,
    _rule_schedule_conflict,
    _rule_good_enough,
    _rule_expand_range,
    _rule_multiple_options,
    _rule_general,
)


def evaluate_rules(context: RuleContext) -> list[Recommendation]:
    """Run every rule and keep the ones that match, in priority order.

    Args:
        context (RuleContext): Rule inputs.

    Returns:
        list[Recommendation]: Matched recommendations, highest priority first.
    """
    return [
        recommendation
        for rule in RULES
        if (recommendation := rule(context)) is not None
    ]


def recommend(plan: Plan) -> RecommendationResult | None:
    """Build the prioritized recommendation for a plan.

    Args:
        plan (Plan): Plan to evaluate.

    Returns:
        RecommendationResult | None: Primary and alternative recommendations,
        or None when nobody has responded.

    Raises:
        InvalidWindowError: If the plan window ends before it starts.
        InvalidTripLengthError: If the trip length is not a positive integer.
    """
    validate_window(plan.start_range, plan.end_range)
    validate_trip_length(plan.num_days)
    if not plan.respondents:
        return None

    scored_windows = score_windows(
        plan.start_range,
        plan.end_range,
        plan.num_days,
        plan.respondents,
    )
    context = RuleContext(
        plan=plan,
        scored_windows=scored_windows,
        shorter_trip=find_shorter_perfect_windows(
            plan.respondents,
            plan.start_range,
            plan.end_range,
            plan.num_days,
        ),
        constrainers=find_constraining_people(
            scored_windows[:CONSTRAINER_TOP_WINDOWS],
            plan.respondents,
            plan,
        ),
    )

    recommendations = evaluate_rules(context)
    logger.debug(
        "Recommendation for plan '{}': {} rule(s) matched, primary P{}",
        plan.name,
        len(recommendations),
        recommendations[0].priority,
    )
    return RecommendationResult(
        primary=recommendations[0],
        alternatives=recommendations[1:],
    )
