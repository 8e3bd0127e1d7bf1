"""
Physical presence and continuous residence analysis.

Pure functions over an applicant's residence and travel rows. Rows arrive
unordered with dates as stored text; anything that cannot be read is left
out of the calculation and reported as a diagnostic instead.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from naturalization.core.exceptions import DateParseError, InconsistentStateError
from naturalization.domain.schemas import (
    Diagnostic,
    GapReport,
    LongTrip,
    LongTripReport,
    PresenceStatus,
    ResidenceGap,
    ResidenceInterval,
    TravelInterval,
    TripOverlap,
)
from naturalization.utils.dates import (
    RECORD_DATE_FORMATS,
    add_years,
    days_between_inclusive,
    normalize_date,
)

logger = structlog.get_logger(__name__)

LONG_TRIP_THRESHOLD_DAYS = 183
MAX_RESIDENCE_GAP_DAYS = 30


def _parse(
    text: Optional[str],
    record_id: Optional[str],
    field: str,
    diagnostics: List[Diagnostic],
) -> Optional[date]:
    parsed = normalize_date(text, RECORD_DATE_FORMATS)
    if parsed.ok:
        return parsed.value
    error = DateParseError(
        text,
        RECORD_DATE_FORMATS,
        details={"record_id": record_id, "field": field, "text": text},
    )
    diagnostics.append(Diagnostic.from_error(error))
    return None


def _inverted(record_id: Optional[str], start: date, end: date) -> Diagnostic:
    error = InconsistentStateError(
        "End date precedes start date",
        details={"record_id": record_id, "start": start.isoformat(), "end": end.isoformat()},
    )
    return Diagnostic.from_error(error)


def _trip_dates(
    intervals: Iterable[TravelInterval], diagnostics: List[Diagnostic]
) -> Tuple[List[Tuple[TravelInterval, date, date]], List[TravelInterval]]:
    """Split trips into (trip, departure, return) triples and unreadable trips."""
    readable = []
    unreadable = []
    for trip in intervals:
        departure = _parse(trip.departure_date, trip.record_id, "departure_date", diagnostics)
        returned = _parse(trip.return_date, trip.record_id, "return_date", diagnostics)
        if departure is None or returned is None:
            unreadable.append(trip)
            continue
        if returned < departure:
            diagnostics.append(_inverted(trip.record_id, departure, returned))
            unreadable.append(trip)
            continue
        readable.append((trip, departure, returned))
    return readable, unreadable


def total_days_abroad(intervals: Iterable[TravelInterval]) -> int:
    """Sum of the stored per-trip durations. Missing durations count as 0."""
    return sum(trip.duration_days or 0 for trip in intervals)


def find_long_trips(
    intervals: Iterable[TravelInterval],
    threshold_days: int = LONG_TRIP_THRESHOLD_DAYS,
) -> LongTripReport:
    """
    Classify trips by the days elapsed between departure and return.

    A trip is long when elapsed days >= threshold_days. Trips with a missing,
    unparseable or inverted date are neither long nor short; they are listed
    in unparseable with a diagnostic each.

    Examples:
        2020-01-01 -> 2020-08-01 is 213 days, long at threshold 183.
    """
    diagnostics: List[Diagnostic] = []
    readable, unreadable = _trip_dates(intervals, diagnostics)

    report = LongTripReport(
        threshold_days=threshold_days,
        unparseable=unreadable,
        diagnostics=diagnostics,
    )
    for trip, departure, returned in readable:
        entry = LongTrip(trip=trip, days=(returned - departure).days)
        if entry.days >= threshold_days:
            report.long_trips.append(entry)
        else:
            report.short_trips.append(entry)

    if unreadable:
        logger.warning(
            "trips_unparseable",
            count=len(unreadable),
            record_ids=[t.record_id for t in unreadable],
        )
    return report


def find_overlapping_trips(intervals: Sequence[TravelInterval]) -> List[TripOverlap]:
    """Every pair of readable trips whose date ranges share at least one day."""
    readable, _ = _trip_dates(intervals, [])
    overlaps = []
    for i, (first, first_from, first_to) in enumerate(readable):
        for second, second_from, second_to in readable[i + 1:]:
            if first_from <= second_to and first_to >= second_from:
                overlaps.append(TripOverlap(first=first, second=second))
    return overlaps


def days_abroad_in_window(
    intervals: Iterable[TravelInterval], window_start: date, window_end: date
) -> int:
    """Trip days inside [window_start, window_end], each trip clipped, both ends counted."""
    total = 0
    readable, _ = _trip_dates(intervals, [])
    for _, departure, returned in readable:
        start = max(departure, window_start)
        end = min(returned, window_end)
        if end >= start:
            total += days_between_inclusive(start, end)
    return total


def find_residence_gaps(
    intervals: Iterable[ResidenceInterval],
    reference_date: Optional[date] = None,
    max_gap_days: int = MAX_RESIDENCE_GAP_DAYS,
) -> GapReport:
    """
    Gaps between consecutive residences, ordered by start date.

    A gap is the number of days from the earlier residence's end date to the
    later one's start date; only positive gaps are reported. A residence with
    no end date is current and extends to reference_date (default today).
    Only the latest residence may be open; an open one earlier in the order
    is reported as inconsistent and still treated as extending to
    reference_date.
    """
    reference_date = reference_date or date.today()
    diagnostics: List[Diagnostic] = []
    rows = []

    for residence in intervals:
        start = _parse(residence.start_date, residence.record_id, "start_date", diagnostics)
        if start is None:
            continue

        if residence.end_date is None or not residence.end_date.strip():
            rows.append((start, None, residence))
            continue

        end = _parse(residence.end_date, residence.record_id, "end_date", diagnostics)
        if end is None:
            continue
        if end < start:
            diagnostics.append(_inverted(residence.record_id, start, end))
            continue
        rows.append((start, end, residence))

    rows.sort(key=lambda row: row[0])

    for start, end, residence in rows[:-1]:
        if end is None:
            error = InconsistentStateError(
                "Residence without an end date is not the latest residence",
                details={"record_id": residence.record_id, "start": start.isoformat()},
            )
            diagnostics.append(Diagnostic.from_error(error))

    gaps = []
    for (_, end, earlier), (start, _, later) in zip(rows, rows[1:]):
        earlier_end = end or reference_date
        days = (start - earlier_end).days
        if days <= 0:
            continue
        gap = ResidenceGap(
            after=earlier,
            before=later,
            days=days,
            exceeds_limit=days > max_gap_days,
        )
        gaps.append(gap)
        logger.info(
            "residence_gap_detected",
            after_record_id=earlier.record_id,
            before_record_id=later.record_id,
            days=days,
            exceeds_limit=gap.exceeds_limit,
        )

    return GapReport(gaps=gaps, diagnostics=diagnostics)


def lookback_window(lookback_years: int, reference_date: Optional[date] = None) -> Tuple[date, date]:
    reference_date = reference_date or date.today()
    return add_years(reference_date, -lookback_years), reference_date


def physical_presence_status(
    total_days_abroad: int,
    days_required: int,
    lookback_years: int,
    reference_date: Optional[date] = None,
) -> PresenceStatus:
    """
    Presence over the lookback window ending at reference_date.

    present = max(0, elapsed - abroad), where elapsed is the day count from
    window start to reference_date. When unmet, shortfall is
    days_required - present and the earliest filing date moves forward by
    the shortfall.
    """
    window_start, window_end = lookback_window(lookback_years, reference_date)
    elapsed = (window_end - window_start).days
    present = max(0, elapsed - total_days_abroad)
    meets = present >= days_required
    shortfall = 0 if meets else days_required - present

    return PresenceStatus(
        meets_requirement=meets,
        days_required=days_required,
        days_present=present,
        days_abroad=total_days_abroad,
        elapsed_days=elapsed,
        shortfall_days=shortfall,
        window_start=window_start,
        window_end=window_end,
        earliest_filing_date=window_end + timedelta(days=shortfall),
    )
