"""
Tests for the presence / gap analyzer and filing date helpers.
"""
from datetime import date

import pytest

from naturalization.domain.schemas import ResidenceInterval, TravelInterval
from naturalization.services.presence import (
    days_abroad_in_window,
    filing_date_after_long_trip,
    find_long_trips,
    find_overlapping_trips,
    find_residence_gaps,
    format_days_as_ymd,
    lookback_window,
    meets_state_residency_requirement,
    physical_presence_status,
    state_residency_date,
    total_days_abroad,
)


def trip(departure, returned, record_id=None, duration=None):
    return TravelInterval(
        record_id=record_id,
        departure_date=departure,
        return_date=returned,
        duration_days=duration,
    )


def residence(start, end=None, record_id=None):
    return ResidenceInterval(record_id=record_id, start_date=start, end_date=end)


# =============================================================================
# TEST: LONG TRIPS
# =============================================================================

class TestFindLongTrips:
    def test_213_day_trip_is_long(self):
        report = find_long_trips([trip("2020-01-01", "2020-08-01", "t1")], 183)

        assert [t.days for t in report.long_trips] == [213]
        assert report.short_trips == []

    def test_threshold_is_inclusive(self):
        """Exactly 183 days → long; 182 days → short."""
        report = find_long_trips(
            [trip("2021-01-01", "2021-07-03", "exact"), trip("2021-01-01", "2021-07-02", "under")],
            183,
        )

        assert [t.trip.record_id for t in report.long_trips] == ["exact"]
        assert [(t.trip.record_id, t.days) for t in report.short_trips] == [("under", 182)]

    def test_us_formatted_dates(self):
        report = find_long_trips([trip("01/01/2020", "08/01/2020")])
        assert report.long_trips[0].days == 213
        assert report.threshold_days == 183

    def test_unparseable_trip_reported_separately(self):
        report = find_long_trips([trip("soon", "2020-08-01", "bad"), trip("2020-01-01", None, "open")])

        assert report.long_trips == []
        assert report.short_trips == []
        assert [t.record_id for t in report.unparseable] == ["bad", "open"]
        assert {d.code for d in report.diagnostics} == {"parse_error"}
        assert report.diagnostics[0].context["record_id"] == "bad"

    def test_return_before_departure_is_inconsistent(self):
        report = find_long_trips([trip("2020-08-01", "2020-01-01", "inverted")])

        assert [t.record_id for t in report.unparseable] == ["inverted"]
        assert report.diagnostics[0].code == "inconsistent_state"


class TestTripTotals:
    def test_total_days_abroad_uses_stored_durations(self):
        trips = [trip("2020-01-01", "2020-01-10", duration=10), trip("x", "y", duration=5), trip("x", "y")]
        assert total_days_abroad(trips) == 15

    def test_overlapping_trips(self):
        first = trip("2021-01-01", "2021-01-10", "a")
        second = trip("2021-01-10", "2021-01-20", "b")
        third = trip("2021-02-01", "2021-02-05", "c")

        overlaps = find_overlapping_trips([first, second, third])

        assert [(o.first.record_id, o.second.record_id) for o in overlaps] == [("a", "b")]

    def test_no_overlaps_between_separate_trips(self):
        trips = [trip("2021-01-01", "2021-01-09"), trip("2021-01-10", "2021-01-20")]
        assert find_overlapping_trips(trips) == []

    def test_days_abroad_in_window_clips_trips(self):
        trips = [
            trip("2021-01-01", "2021-01-10"),  # 6 days inside
            trip("2021-02-01", "2021-02-05"),  # 5 days
            trip("2022-03-01", "2022-03-05"),  # outside
            trip("bad", "2021-02-05"),  # ignored
        ]
        assert days_abroad_in_window(trips, date(2021, 1, 5), date(2021, 12, 31)) == 11


# =============================================================================
# TEST: RESIDENCE GAPS
# =============================================================================

class TestFindResidenceGaps:
    def test_gap_between_unsorted_intervals(self):
        """Input order does not matter: one 61-day gap."""
        report = find_residence_gaps(
            [residence("2020-08-01", "2020-12-01", "later"), residence("2020-01-01", "2020-06-01", "earlier")],
            reference_date=date(2025, 1, 1),
        )

        assert len(report.gaps) == 1
        gap = report.gaps[0]
        assert gap.days == 61
        assert gap.after.record_id == "earlier"
        assert gap.before.record_id == "later"
        assert gap.exceeds_limit is True
        assert report.diagnostics == []

    def test_contiguous_intervals_have_no_gaps(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "2020-06-01"), residence("2020-06-01", "2020-12-01")],
            reference_date=date(2025, 1, 1),
        )
        assert report.gaps == []

    def test_overlapping_intervals_have_no_gaps(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "2020-07-01"), residence("2020-06-01", "2020-12-01")],
            reference_date=date(2025, 1, 1),
        )
        assert report.gaps == []

    def test_short_gap_within_limit(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "2020-06-01"), residence("2020-06-21", "2020-12-01")],
            reference_date=date(2025, 1, 1),
        )
        assert [(g.days, g.exceeds_limit) for g in report.gaps] == [(20, False)]

    def test_current_residence_as_latest_is_fine(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "2020-06-01"), residence("2020-08-01", None)],
            reference_date=date(2025, 1, 1),
        )
        assert [g.days for g in report.gaps] == [61]
        assert report.diagnostics == []

    def test_open_residence_before_another_extends_to_reference_date(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "", "open"), residence("2024-01-01", "2024-06-01", "next")],
            reference_date=date(2023, 6, 1),
        )

        assert [g.days for g in report.gaps] == [214]
        assert [d.code for d in report.diagnostics] == ["inconsistent_state"]
        assert report.diagnostics[0].context["record_id"] == "open"

    def test_bad_rows_excluded_with_diagnostics(self):
        report = find_residence_gaps(
            [
                residence("not a date", "2020-06-01", "bad-start"),
                residence("2020-06-01", "2020-01-01", "inverted"),
                residence("2021-01-01", "2021-06-01", "ok"),
            ],
            reference_date=date(2025, 1, 1),
        )

        assert report.gaps == []
        assert [d.code for d in report.diagnostics] == ["parse_error", "inconsistent_state"]

    def test_custom_gap_limit(self):
        report = find_residence_gaps(
            [residence("2020-01-01", "2020-06-01"), residence("2020-06-21", "2020-12-01")],
            reference_date=date(2025, 1, 1),
            max_gap_days=10,
        )
        assert report.gaps[0].exceeds_limit is True


# =============================================================================
# TEST: PHYSICAL PRESENCE
# =============================================================================

class TestPhysicalPresence:
    def test_lookback_window(self):
        assert lookback_window(5, date(2025, 6, 1)) == (date(2020, 6, 1), date(2025, 6, 1))

    def test_requirement_met(self):
        status = physical_presence_status(400, 913, 5, date(2025, 6, 1))

        assert status.elapsed_days == 1826
        assert status.days_present == 1426
        assert status.meets_requirement is True
        assert status.shortfall_days == 0
        assert status.earliest_filing_date == date(2025, 6, 1)

    def test_shortfall_moves_filing_date(self):
        status = physical_presence_status(1000, 913, 5, date(2025, 6, 1))

        assert status.days_present == 826
        assert status.meets_requirement is False
        assert status.shortfall_days == 87
        assert status.earliest_filing_date == date(2025, 8, 27)

    def test_days_present_never_negative(self):
        status = physical_presence_status(5000, 913, 5, date(2025, 6, 1))

        assert status.days_present == 0
        assert status.shortfall_days == 913

    def test_three_year_window(self):
        status = physical_presence_status(0, 548, 3, date(2025, 6, 1))

        assert status.window_start == date(2022, 6, 1)
        assert status.elapsed_days == 1096
        assert status.meets_requirement is True


# =============================================================================
# TEST: FILING HELPERS
# =============================================================================

class TestFilingHelpers:
    @pytest.mark.parametrize(
        "factor, expected",
        [("LPR", date(2026, 4, 4)), ("DM", date(2024, 4, 4)), (None, date(2026, 4, 4))],
    )
    def test_filing_date_after_long_trip(self, factor, expected):
        """(return + 1 day + lookback years) − 3 months."""
        assert filing_date_after_long_trip(date(2021, 7, 3), factor) == expected

    def test_state_residency(self):
        assert state_residency_date(date(2025, 1, 1)) == date(2025, 4, 1)
        assert meets_state_residency_requirement(date(2025, 1, 1), date(2025, 3, 31)) is False
        assert meets_state_residency_requirement(date(2025, 1, 1), date(2025, 4, 1)) is True

    @pytest.mark.parametrize(
        "days, expected",
        [
            (0, "0 days"),
            (1, "1 day"),
            (31, "1 month, 1 day"),
            (400, "1 year, 1 month, 5 days"),
            (730, "2 years"),
        ],
    )
    def test_format_days_as_ymd(self, days, expected):
        assert format_days_as_ymd(days) == expected
