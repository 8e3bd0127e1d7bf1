"""
Controlling-factor registry.

Maps the controlling-factor code stored on the master record to the lookback
window and the cumulative physical presence the applicant needs. Every rule
derives from THREE_YEAR_FACTORS so the three lookups can never disagree.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from naturalization.utils.dates import (
    APPLICATION_DATE_FORMATS,
    add_years,
    format_iso,
    normalize_date,
)


class ControllingFactor(str, Enum):
    DM = "DM"  # Date of marriage
    SC = "SC"  # Spouse citizen
    LPR = "LPR"  # Lawful permanent resident
    LPRM = "LPRM"  # LPR, married without benefit
    LPRS = "LPRS"  # LPR, spouse citizenship without benefit


THREE_YEAR_FACTORS = frozenset({ControllingFactor.DM.value, ControllingFactor.SC.value})

THREE_YEAR_LOOKBACK = 3
FIVE_YEAR_LOOKBACK = 5
THREE_YEAR_DAYS_REQUIRED = 548
FIVE_YEAR_DAYS_REQUIRED = 913

DEFAULT_LONG_TRIP_THRESHOLD_DAYS = 183


@dataclass(frozen=True)
class FactorRule:
    code: str
    lookback_years: int
    days_required: int
    is_three_year: bool


def _code(controlling_factor: Any) -> str:
    if controlling_factor is None:
        return ""
    if isinstance(controlling_factor, ControllingFactor):
        return controlling_factor.value
    return str(controlling_factor).strip()


def is_three_year(controlling_factor: Any) -> bool:
    """Unknown and empty codes fall back to the 5-year rule."""
    return _code(controlling_factor) in THREE_YEAR_FACTORS


def lookback_years(controlling_factor: Any) -> int:
    return THREE_YEAR_LOOKBACK if is_three_year(controlling_factor) else FIVE_YEAR_LOOKBACK


def days_required(controlling_factor: Any) -> int:
    if is_three_year(controlling_factor):
        return THREE_YEAR_DAYS_REQUIRED
    return FIVE_YEAR_DAYS_REQUIRED


def factor_rule(controlling_factor: Any) -> FactorRule:
    return FactorRule(
        code=_code(controlling_factor),
        lookback_years=lookback_years(controlling_factor),
        days_required=days_required(controlling_factor),
        is_three_year=is_three_year(controlling_factor),
    )


def client_payload(
    controlling_factor: Any,
    application_date: Optional[str] = None,
    long_trip_threshold_days: int = DEFAULT_LONG_TRIP_THRESHOLD_DAYS,
) -> Dict[str, Any]:
    """
    Values the time-outside and residence pages consume.

    lookbackStart is the application date moved back by the lookback window,
    empty when no application date is stored or it does not parse.
    """
    rule = factor_rule(controlling_factor)
    parsed = normalize_date(application_date, APPLICATION_DATE_FORMATS)

    lookback_start: Optional[date] = None
    if parsed.ok:
        lookback_start = add_years(parsed.value, -rule.lookback_years)

    return {
        "controllingFactor": rule.code,
        "applicationDate": parsed.iso or "",
        "lookbackYears": rule.lookback_years,
        "lookbackStart": format_iso(lookback_start),
        "daysRequired": rule.days_required,
        "isThreeYear": rule.is_three_year,
        "longTripThreshold": long_trip_threshold_days,
    }
