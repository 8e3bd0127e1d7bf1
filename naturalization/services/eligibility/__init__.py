from naturalization.services.eligibility.controlling_factor import (
    THREE_YEAR_FACTORS,
    ControllingFactor,
    FactorRule,
    client_payload,
    days_required,
    factor_rule,
    is_three_year,
    lookback_years,
)
from naturalization.services.eligibility.determination import (
    DerivedDates,
    Recalculation,
    compute_derived_dates,
    determine_controlling_factor,
    recalculate,
)
from naturalization.services.eligibility.unlock_calculator import (
    ELIGIBILITY_ASSESSMENT_DESCRIPTIONS,
    ELIGIBILITY_ASSESSMENT_STATUS,
    compute_unlock_date,
    is_eligibility_assessment,
    is_locked,
    resolve_lockout,
)

__all__ = [
    "THREE_YEAR_FACTORS",
    "ControllingFactor",
    "FactorRule",
    "client_payload",
    "days_required",
    "factor_rule",
    "is_three_year",
    "lookback_years",
    "DerivedDates",
    "Recalculation",
    "compute_derived_dates",
    "determine_controlling_factor",
    "recalculate",
    "ELIGIBILITY_ASSESSMENT_DESCRIPTIONS",
    "ELIGIBILITY_ASSESSMENT_STATUS",
    "compute_unlock_date",
    "is_eligibility_assessment",
    "is_locked",
    "resolve_lockout",
]
