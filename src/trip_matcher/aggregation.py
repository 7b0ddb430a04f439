"""Per-day availability aggregation across respondents."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from loguru import logger

from .models import Respondent
from .window import iter_window_days

AVAILABILITY_THRESHOLDS = {
    "high": 0.8,
    "partial": 0.5,
}


@dataclass(frozen=True)
class DayAvailability:
    """Represent who is free on one calendar day.

    Attributes:
        day (date): Calendar day.
        count (int): Number of respondents free that day.
        respondent_ids (tuple[str, ...]): Ids of those respondents, in input order.
    """

    day: date
    count: int
    respondent_ids: tuple[str, ...]


def build_day_counts(
    start_range: date,
    end_range: date,
    respondents: Sequence[Respondent],
) -> dict[date, int]:
    """Count free respondents for every day of the window.

    Every window day is present, days nobody picked hold an explicit zero.
    Respondent days outside the window are ignored.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.
        respondents (Sequence[Respondent]): Responses to aggregate.

    Returns:
        dict[date, int]: Day to free-respondent count, in window order.

    Raises:
        InvalidWindowError: If ``end_range`` is before ``start_range``.
    """
    day_counts = {day: 0 for day in iter_window_days(start_range, end_range)}

    ignored = 0
    for respondent in respondents:
        for available_day in respondent.available_dates:
            current = day_counts.get(available_day)
            if current is None:
                ignored += 1
                continue
            day_counts[available_day] = current + 1

    if ignored:
        logger.debug(
            "Ignored {} availability day(s) outside {}..{}",
            ignored,
            start_range.isoformat(),
            end_range.isoformat(),
        )
    return day_counts


def build_day_availability(
    start_range: date,
    end_range: date,
    respondents: Sequence[Respondent],
) -> dict[date, DayAvailability]:
    """Build per-day records holding both count and respondent ids.

    Args:
        start_range (date): Inclusive window start.
        end_range (date): Inclusive window end.
        respondents (Sequence[Respondent]): Responses to aggregate.

    Returns:
        dict[date, DayAvailability]: Day records in window order.
    """
    free_ids: dict[date, list[str]] = {
        day: [] for day in iter_window_days(start_range, end_range)
    }
    for respondent in respondents:
        for available_day in sorted(respondent.available_dates):
            ids = free_ids.get(available_day)
            if ids is not None:
                ids.append(respondent.respondent_id)

    return {
        day: DayAvailability(day=day, count=len(ids), respondent_ids=tuple(ids))
        for day, ids in free_ids.items()
    }


def availability_level(count: int, total: int) -> str:
    """Grade one day's availability for heatmap-style summaries.

    Args:
        count (int): Respondents free that day.
        total (int): Total respondents.

    Returns:
        str: One of "none", "low", "partial" or "high".
    """
    if count <= 0 or total <= 0:
        return "none"
    ratio = count / total
    if ratio >= AVAILABILITY_THRESHOLDS["high"]:
        return "high"
    if ratio >= AVAILABILITY_THRESHOLDS["partial"]:
        return "partial"
    return "low"
