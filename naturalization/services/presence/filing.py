"""Filing date helpers for continuous residence and state residency."""

from datetime import date, timedelta
from typing import Any, Optional

from naturalization.services.eligibility.controlling_factor import lookback_years
from naturalization.utils.dates import add_years, subtract_months

STATE_RESIDENCY_DAYS = 90
EARLY_FILING_MONTHS = 3


def filing_date_after_long_trip(return_date: date, controlling_factor: Any) -> date:
    """
    Earliest filing date once a long trip has broken continuous residence.

    (day after return + lookback years) - 3 months
    """
    restart = return_date + timedelta(days=1)
    return subtract_months(add_years(restart, lookback_years(controlling_factor)), EARLY_FILING_MONTHS)


def state_residency_date(moved_to_state: date) -> date:
    return moved_to_state + timedelta(days=STATE_RESIDENCY_DAYS)


def meets_state_residency_requirement(moved_to_state: date, as_of: Optional[date] = None) -> bool:
    return (as_of or date.today()) >= state_residency_date(moved_to_state)


def format_days_as_ymd(days: int) -> str:
    """
    Approximate years/months/days using 365-day years and 30-day months.

    >>> format_days_as_ymd(400)
    '1 year, 1 month, 5 days'
    """
    years = days // 365
    months = (days % 365) // 30
    remainder = (days % 365) % 30

    parts = []
    for value, unit in ((years, "year"), (months, "month"), (remainder, "day")):
        if value:
            parts.append(f"{value} {unit}{'' if value == 1 else 's'}")
    return ", ".join(parts) or "0 days"
