"""
Presence analysis for one applicant.

Reads the master record and its travel and residence rows fresh from the
record store and combines the analyzer results into one report, including
the plain-text warnings the time-outside finish step shows.
"""

from datetime import date
from typing import List, Optional

import structlog

from naturalization.core.config import Settings, get_settings
from naturalization.core.exceptions import MissingReferenceError
from naturalization.domain.schemas import (
    ApplicantPresenceReport,
    Diagnostic,
    GapReport,
    LongTripReport,
    PresenceStatus,
    TripOverlap,
)
from naturalization.infrastructure.record_store import RecordStore
from naturalization.services.applicant.master_record import MasterRecordRepository
from naturalization.services.eligibility.controlling_factor import factor_rule
from naturalization.services.presence.analyzer import (
    days_abroad_in_window,
    find_long_trips,
    find_overlapping_trips,
    find_residence_gaps,
    lookback_window,
    physical_presence_status,
    total_days_abroad,
)
from naturalization.services.presence.filing import (
    filing_date_after_long_trip,
    format_days_as_ymd,
)
from naturalization.utils.dates import (
    APPLICATION_DATE_FORMATS,
    RECORD_DATE_FORMATS,
    format_long,
    normalize_date,
)

logger = structlog.get_logger(__name__)


def _trip_label(trip) -> str:
    return trip.record_id or f"{trip.departure_date} - {trip.return_date}"


def build_messages(
    lookback_years: int,
    presence: PresenceStatus,
    long_trips: LongTripReport,
    overlaps: List[TripOverlap],
    gaps: GapReport,
    filing_date: Optional[date],
) -> List[str]:
    messages = []

    if long_trips.long_trips:
        labels = ", ".join(_trip_label(t.trip) for t in long_trips.long_trips)
        messages.append(f"Warning: The following trips exceed 6 months: {labels}")
        if filing_date:
            messages.append(
                "Because you have a trip that exceeds 6 months, continuous residence "
                f"has been disrupted. You will need to wait until {format_long(filing_date)} "
                "to file your application."
            )

    for overlap in overlaps:
        messages.append(
            f"Warning: Trip {_trip_label(overlap.first)} overlaps with "
            f"trip {_trip_label(overlap.second)}"
        )

    for gap in gaps.gaps:
        if gap.exceeds_limit:
            messages.append(
                f"Warning: There is a gap of {gap.days} days between the residence "
                f"ending {gap.after.end_date} and the residence starting "
                f"{gap.before.start_date}."
            )

    if not presence.meets_requirement:
        messages.append(
            "You have not been physically present in the US for the required time "
            f"in the last {lookback_years} years. You are short by "
            f"{presence.shortfall_days} days ({format_days_as_ymd(presence.shortfall_days)}). "
            f"You will have to wait to file until {format_long(presence.earliest_filing_date)}."
        )

    return messages


class PresenceAnalyzer:
    def __init__(self, record_store: RecordStore, settings: Optional[Settings] = None):
        self.master_records = MasterRecordRepository(record_store)
        self.settings = settings or get_settings()

    def analyze(
        self, master_record_id: str, reference_date: Optional[date] = None
    ) -> ApplicantPresenceReport:
        """
        Presence report for the applicant owning master_record_id.

        Presence is computed from trip days inside the lookback window ending
        at reference_date (default today). A missing master record yields a
        report with a missing_reference diagnostic and no analysis.
        """
        reference_date = reference_date or date.today()

        try:
            record = self.master_records.require(master_record_id)
        except MissingReferenceError as e:
            rule = factor_rule(None)
            return ApplicantPresenceReport(
                master_record_id=str(master_record_id),
                lookback_years=rule.lookback_years,
                days_required=rule.days_required,
                reference_date=reference_date,
                diagnostics=[Diagnostic.from_error(e)],
            )

        rule = factor_rule(record.controlling_factor)
        trips = self.master_records.child_travel_intervals(record.record_id)
        residences = self.master_records.child_residence_intervals(record.record_id)

        long_trips = find_long_trips(trips, self.settings.long_trip_threshold_days)
        gaps = find_residence_gaps(
            residences,
            reference_date=reference_date,
            max_gap_days=self.settings.max_residence_gap_days,
        )
        overlaps = find_overlapping_trips(trips)

        window_start, window_end = lookback_window(rule.lookback_years, reference_date)
        abroad_in_window = days_abroad_in_window(trips, window_start, window_end)
        presence = physical_presence_status(
            abroad_in_window, rule.days_required, rule.lookback_years, reference_date
        )

        filing_date = None
        if long_trips.long_trips:
            latest = max(
                long_trips.long_trips,
                key=lambda t: normalize_date(t.trip.return_date, RECORD_DATE_FORMATS).value,
            )
            filing_date = filing_date_after_long_trip(
                normalize_date(latest.trip.return_date, RECORD_DATE_FORMATS).value,
                rule.code,
            )

        report = ApplicantPresenceReport(
            master_record_id=record.record_id,
            controlling_factor=record.controlling_factor,
            application_date=normalize_date(record.application_date, APPLICATION_DATE_FORMATS).value,
            lookback_years=rule.lookback_years,
            days_required=rule.days_required,
            reference_date=reference_date,
            total_days_abroad=total_days_abroad(trips),
            days_abroad_in_window=abroad_in_window,
            presence=presence,
            long_trips=long_trips,
            residence_gaps=gaps,
            overlapping_trips=overlaps,
            filing_date_after_long_trip=filing_date,
            messages=build_messages(
                rule.lookback_years, presence, long_trips, overlaps, gaps, filing_date
            ),
            diagnostics=long_trips.diagnostics + gaps.diagnostics,
        )

        logger.info(
            "presence_analyzed",
            master_record_id=record.record_id,
            controlling_factor=record.controlling_factor,
            days_present=presence.days_present,
            days_required=presence.days_required,
            long_trips=len(long_trips.long_trips),
            residence_gaps=len(gaps.gaps),
            overlaps=len(overlaps),
            diagnostics=len(report.diagnostics),
        )
        return report
