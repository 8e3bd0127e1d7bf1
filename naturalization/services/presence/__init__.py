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
    meets_state_residency_requirement,
    state_residency_date,
)
from naturalization.services.presence.presence_service import PresenceAnalyzer

__all__ = [
    "days_abroad_in_window",
    "find_long_trips",
    "find_overlapping_trips",
    "find_residence_gaps",
    "lookback_window",
    "physical_presence_status",
    "total_days_abroad",
    "filing_date_after_long_trip",
    "format_days_as_ymd",
    "meets_state_residency_requirement",
    "state_residency_date",
    "PresenceAnalyzer",
]
