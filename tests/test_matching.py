"""Tests for full and partial date-window matching."""

from datetime import date, timedelta

import pytest

from factories import make_plan, make_respondent
from trip_matcher.aggregation import build_day_counts
from trip_matcher.matching import (
    CompatibleDateRange,
    MatchCache,
    PartialCompatibilityStats,
    find_compatible_ranges,
    find_partial_compatible_ranges,
    longest_personal_run,
    match_plan,
    respondent_status,
)
from trip_matcher.models import InvalidTripLengthError, InvalidWindowError


def _as_dicts(ranges):
    return [item.to_dict() for item in ranges]


def _assert_ordering_law(ranges):
    for first, second in zip(ranges, ranges[1:]):
        assert first.length_days > second.length_days or (
            first.length_days == second.length_days and first.start <= second.start
        )


def _assert_contiguous_and_maximal(ranges, qualifies, start, end):
    previous_end = None
    for item in sorted(ranges, key=lambda value: value.start):
        if previous_end is not None:
            assert item.start > previous_end
        day = item.start
        while day <= item.end:
            assert qualifies(day)
            day += timedelta(days=1)
        before = item.start - timedelta(days=1)
        after = item.end + timedelta(days=1)
        if before >= start:
            assert not qualifies(before)
        if after <= end:
            assert not qualifies(after)
        previous_end = item.end


@pytest.fixture
def group_of_three():
    return [
        make_respondent("a", ("2024-06-01", "2024-06-04"), ("2024-06-07", "2024-06-10"), name="Ana"),
        make_respondent("b", ("2024-06-01", "2024-06-10"), name="Bruno"),
        make_respondent("c", ("2024-06-02", "2024-06-03"), ("2024-06-08", "2024-06-09"), name="Carla"),
    ]


class TestFindCompatibleRanges:
    """Tests for windows where everyone is free."""

    def test_scenario_shared_block(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-03", "2024-06-07")),
            make_respondent("b", ("2024-06-03", "2024-06-07")),
        ]
        ranges = find_compatible_ranges(start, end, 3, respondents)
        assert _as_dicts(ranges) == [
            {"start": "2024-06-03", "end": "2024-06-07", "availableCount": 2, "totalCount": 2},
        ]

    def test_overlap_too_short_is_empty(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-03", "2024-06-07")),
            make_respondent("b", ("2024-06-01", "2024-06-04")),
        ]
        assert find_compatible_ranges(start, end, 3, respondents) == []

    def test_zero_respondents(self, june_window):
        start, end = june_window
        assert find_compatible_ranges(start, end, 1, []) == []

    def test_trip_longer_than_window(self, june_window):
        start, end = june_window
        respondents = [make_respondent("a", ("2024-06-01", "2024-06-10"))]
        assert find_compatible_ranges(start, end, 11, respondents) == []

    def test_whole_window_trailing_run(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-01", "2024-06-10")),
            make_respondent("b", ("2024-06-01", "2024-06-10")),
        ]
        ranges = find_compatible_ranges(start, end, 10, respondents)
        assert [(item.start, item.end) for item in ranges] == [(start, end)]

    def test_run_ending_on_last_window_day(self, june_window):
        start, end = june_window
        respondents = [make_respondent("a", ("2024-06-08", "2024-06-12"))]
        ranges = find_compatible_ranges(start, end, 3, respondents)
        assert _as_dicts(ranges) == [
            {"start": "2024-06-08", "end": "2024-06-10", "availableCount": 1, "totalCount": 1},
        ]

    def test_orders_longest_then_earliest(self):
        respondents = [
            make_respondent(
                "a",
                ("2024-06-01", "2024-06-02"),
                ("2024-06-04", "2024-06-07"),
                ("2024-06-10", "2024-06-11"),
                ("2024-06-13", "2024-06-16"),
            ),
        ]
        ranges = find_compatible_ranges(date(2024, 6, 1), date(2024, 6, 20), 2, respondents)
        assert [(item.start.isoformat(), item.length_days) for item in ranges] == [
            ("2024-06-04", 4),
            ("2024-06-13", 4),
            ("2024-06-01", 2),
            ("2024-06-10", 2),
        ]
        _assert_ordering_law(ranges)

    def test_ranges_are_contiguous_and_maximal(self, june_window, group_of_three):
        start, end = june_window
        counts = build_day_counts(start, end, group_of_three)
        ranges = find_compatible_ranges(start, end, 1, group_of_three)
        assert [(item.start.day, item.end.day) for item in ranges] == [(2, 3), (8, 9)]
        _assert_contiguous_and_maximal(ranges, lambda day: counts[day] == 3, start, end)

    def test_idempotent(self, june_window, group_of_three):
        start, end = june_window
        first = find_compatible_ranges(start, end, 1, group_of_three)
        second = find_compatible_ranges(start, end, 1, group_of_three)
        assert _as_dicts(first) == _as_dicts(second)

    def test_malformed_window_fails_fast(self):
        with pytest.raises(InvalidWindowError):
            find_compatible_ranges(date(2024, 6, 10), date(2024, 6, 1), 1, [])

    @pytest.mark.parametrize("num_days", [0, -1, 2.5, True])
    def test_bad_trip_length_fails_fast(self, june_window, num_days):
        start, end = june_window
        with pytest.raises(InvalidTripLengthError):
            find_compatible_ranges(start, end, num_days, [])

    @pytest.mark.parametrize("num_days", [2.5, True, "3"])
    def test_non_integer_trip_length_rejected_by_both_resolvers(self, june_window, num_days):
        start, end = june_window
        respondents = [make_respondent("a", ("2024-06-01", "2024-06-10"))]
        with pytest.raises(InvalidTripLengthError):
            find_compatible_ranges(start, end, num_days, respondents)
        with pytest.raises(InvalidTripLengthError):
            find_partial_compatible_ranges(start, end, num_days, respondents)


class TestLongestPersonalRun:
    """Tests for per-respondent streaks."""

    def test_longest_of_several_streaks(self, june_window):
        start, end = june_window
        respondent = make_respondent("a", ("2024-06-01", "2024-06-02"), ("2024-06-05", "2024-06-08"))
        assert longest_personal_run(respondent.available_dates, start, end) == 4

    def test_no_availability(self, june_window):
        start, end = june_window
        assert longest_personal_run(frozenset(), start, end) == 0

    def test_out_of_window_days_not_counted(self, june_window):
        start, end = june_window
        respondent = make_respondent("a", ("2024-05-25", "2024-06-02"))
        assert longest_personal_run(respondent.available_dates, start, end) == 2


class TestFindPartialCompatibleRanges:
    """Tests for near-miss diagnostics."""

    def test_scenario_short_overlap(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-03", "2024-06-07"), name="Ana"),
            make_respondent("b", ("2024-06-01", "2024-06-04"), name="Bruno"),
        ]
        stats = find_partial_compatible_ranges(start, end, 2, respondents)
        assert _as_dicts(stats.partial_ranges) == [
            {"start": "2024-06-03", "end": "2024-06-04", "availableCount": 2, "totalCount": 2},
        ]
        assert stats.blocking_respondents == []
        assert stats.respondents_with_sufficient_availability == 2

    def test_scenario_short_overlap_at_trip_length(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-03", "2024-06-07"), name="Ana"),
            make_respondent("b", ("2024-06-01", "2024-06-04"), name="Bruno"),
        ]
        stats = find_partial_compatible_ranges(start, end, 3, respondents)
        # The two-day overlap is the only max-count run and is shorter than the trip.
        assert stats.partial_ranges == []
        assert stats.blocking_respondents == []
        assert stats.respondents_with_sufficient_availability == 2
        assert stats.total_respondents == 2

    def test_blocking_respondent_reported_by_name(self, june_window, group_of_three):
        start, end = june_window
        stats = find_partial_compatible_ranges(start, end, 3, group_of_three)
        assert stats.blocking_respondents == ["Carla"]
        assert stats.respondents_with_sufficient_availability == 2
        assert stats.total_respondents == 3

    def test_partial_ranges_use_maximum_count(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-01", "2024-06-06")),
            make_respondent("b", ("2024-06-02", "2024-06-05")),
            make_respondent("c", ("2024-06-08", "2024-06-10")),
        ]
        stats = find_partial_compatible_ranges(start, end, 3, respondents)
        assert _as_dicts(stats.partial_ranges) == [
            {"start": "2024-06-02", "end": "2024-06-05", "availableCount": 2, "totalCount": 3},
        ]
        counts = build_day_counts(start, end, respondents)
        _assert_contiguous_and_maximal(stats.partial_ranges, lambda day: counts[day] == 2, start, end)

    def test_trailing_partial_run(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", ("2024-06-06", "2024-06-10")),
            make_respondent("b", ("2024-06-01", "2024-06-02")),
        ]
        stats = find_partial_compatible_ranges(start, end, 3, respondents)
        assert _as_dicts(stats.partial_ranges) == [
            {"start": "2024-06-06", "end": "2024-06-10", "availableCount": 1, "totalCount": 2},
        ]
        assert stats.blocking_respondents == ["B"]

    def test_no_availability_anywhere(self, june_window):
        start, end = june_window
        respondents = [
            make_respondent("a", name="Ana"),
            make_respondent("b", ("2024-07-01", "2024-07-05"), name="Bruno"),
        ]
        stats = find_partial_compatible_ranges(start, end, 1, respondents)
        assert stats.partial_ranges == []
        assert stats.blocking_respondents == ["Ana", "Bruno"]
        assert stats.respondents_with_sufficient_availability == 0

    def test_zero_respondents(self, june_window):
        start, end = june_window
        stats = find_partial_compatible_ranges(start, end, 3, [])
        assert stats == PartialCompatibilityStats()
        assert stats.to_dict() == {
            "partialRanges": [],
            "respondentsWithSufficientAvailability": 0,
            "totalRespondents": 0,
            "blockingRespondents": [],
        }

    def test_trip_longer_than_window(self, june_window):
        start, end = june_window
        respondents = [make_respondent("a", ("2024-06-01", "2024-06-10"))]
        stats = find_partial_compatible_ranges(start, end, 11, respondents)
        assert stats.partial_ranges == []
        assert stats.blocking_respondents == ["A"]

    def test_malformed_inputs_fail_fast(self, june_window):
        start, end = june_window
        with pytest.raises(InvalidWindowError):
            find_partial_compatible_ranges(end, start, 1, [])
        with pytest.raises(InvalidTripLengthError):
            find_partial_compatible_ranges(start, end, 0, [])

    def test_idempotent(self, june_window, group_of_three):
        start, end = june_window
        first = find_partial_compatible_ranges(start, end, 2, group_of_three)
        second = find_partial_compatible_ranges(start, end, 2, group_of_three)
        assert first.to_dict() == second.to_dict()
        _assert_ordering_law(first.partial_ranges)


class TestRespondentStatus:
    """Tests for per-respondent grading."""

    def test_graded_against_best_range(self):
        best = CompatibleDateRange(date(2024, 6, 3), date(2024, 6, 5), 1, 3)
        plan = make_plan("2024-06-01", "2024-06-10", 3)
        full = make_respondent("a", ("2024-06-01", "2024-06-06"))
        some = make_respondent("b", ("2024-06-05", "2024-06-08"))
        none = make_respondent("c", ("2024-06-08", "2024-06-09"))
        assert respondent_status(full, plan, best) == "available"
        assert respondent_status(some, plan, best) == "partial"
        assert respondent_status(none, plan, best) == "unavailable"

    def test_graded_on_own_streak_without_best_range(self):
        plan = make_plan("2024-06-01", "2024-06-10", 3)
        assert respondent_status(make_respondent("a", ("2024-06-01", "2024-06-03")), plan) == "available"
        assert respondent_status(make_respondent("b", ("2024-06-01", "2024-06-02")), plan) == "partial"
        assert respondent_status(make_respondent("c"), plan) == "unavailable"


class TestMatchPlan:
    """Tests for the combined full-then-partial flow."""

    def test_full_match_skips_partial(self):
        plan = make_plan(
            "2024-06-01",
            "2024-06-10",
            3,
            make_respondent("a", ("2024-06-03", "2024-06-07")),
            make_respondent("b", ("2024-06-03", "2024-06-07")),
        )
        result = match_plan(plan)
        assert result.partial is None
        assert result.best_range == result.compatible_ranges[0]

    def test_falls_back_to_partial(self):
        plan = make_plan(
            "2024-06-01",
            "2024-06-10",
            2,
            make_respondent("a", ("2024-06-01", "2024-06-05")),
            make_respondent("b", ("2024-06-04", "2024-06-08")),
            make_respondent("c", ("2024-06-09", "2024-06-10")),
        )
        result = match_plan(plan)
        assert result.compatible_ranges == []
        assert result.partial is not None
        assert result.best_range is not None
        assert result.best_range.to_dict() == {
            "start": "2024-06-04",
            "end": "2024-06-05",
            "availableCount": 2,
            "totalCount": 3,
        }

    def test_empty_plan_has_no_best_range(self):
        result = match_plan(make_plan("2024-06-01", "2024-06-10", 3))
        assert result.compatible_ranges == []
        assert result.partial is not None
        assert result.partial.total_respondents == 0
        assert result.best_range is None


class TestMatchCache:
    """Tests for last-result caching."""

    def test_reuses_result_for_equal_plan(self):
        cache = MatchCache()
        respondent = make_respondent("a", ("2024-06-01", "2024-06-05"))
        first = cache.get(make_plan("2024-06-01", "2024-06-10", 3, respondent))
        second = cache.get(make_plan("2024-06-01", "2024-06-10", 3, respondent))
        assert second is first

    def test_recomputes_when_responses_change(self):
        cache = MatchCache()
        ana = make_respondent("a", ("2024-06-01", "2024-06-05"))
        first = cache.get(make_plan("2024-06-01", "2024-06-10", 3, ana))
        bruno = make_respondent("b", ("2024-06-08", "2024-06-10"))
        second = cache.get(make_plan("2024-06-01", "2024-06-10", 3, ana, bruno))
        assert second is not first
        assert second.compatible_ranges == []
        assert first.compatible_ranges[0].available_count == 1

    def test_clear_forces_recompute(self):
        cache = MatchCache()
        plan = make_plan("2024-06-01", "2024-06-10", 3)
        first = cache.get(plan)
        cache.clear()
        assert cache.get(plan) is not first
