"""
Unlock date calculation and lockout resolution.

An applicant in eligibility-assessment status is locked out of the topic
pages until 6 calendar months before their earliest filing date. The lock is
nothing more than the stored unlock date; once today reaches it the lock is
gone and the stored lockout fields are cleared together.
"""

from datetime import date
from typing import List, Optional

import structlog

from naturalization.core.exceptions import DateParseError, InconsistentStateError
from naturalization.domain.fields import LOCKOUT_META_KEYS
from naturalization.domain.schemas import (
    Diagnostic,
    LockoutResolution,
    LockoutState,
    MetaWrite,
    UnlockDateResult,
)
from naturalization.utils.dates import (
    APPLICATION_DATE_FORMATS,
    UNLOCK_DATE_FORMATS,
    DateInput,
    normalize_date,
    subtract_months,
)

logger = structlog.get_logger(__name__)

ELIGIBILITY_ASSESSMENT_STATUS = "Eligibility Assessment"

# Legacy controlling descriptions that also mean eligibility assessment
ELIGIBILITY_ASSESSMENT_DESCRIPTIONS = (
    "LPRC - 1C",
    "LPRC - Married No Benefit EA",
    "LPRC - Spouse No Benefit EA",
    "LPR3 - 2G",
    "LPR3 - 2I",
    "DMC - 2H",
    "SCC - 2H",
    "SCC - 2I",
)

UNLOCK_LEAD_MONTHS = 6


def is_eligibility_assessment(status: Optional[str], controlling_desc: Optional[str] = "") -> bool:
    """True for the assessment status or one of the legacy descriptions. Exact matches only."""
    if status == ELIGIBILITY_ASSESSMENT_STATUS:
        return True
    return controlling_desc in ELIGIBILITY_ASSESSMENT_DESCRIPTIONS


def compute_unlock_date(
    application_date: DateInput, lead_months: int = UNLOCK_LEAD_MONTHS
) -> UnlockDateResult:
    """
    Unlock date for a filing date: lead_months calendar months earlier.

    The application date may be ISO, US month/day/year or day/month/year,
    tried in that order.

    Examples:
        >>> compute_unlock_date("2025-09-15").iso
        '2025-03-15'
        >>> compute_unlock_date("2025-08-31").iso
        '2025-02-28'
    """
    parsed = normalize_date(application_date, APPLICATION_DATE_FORMATS)
    if not parsed.ok:
        error = DateParseError(
            None if application_date is None else str(application_date),
            APPLICATION_DATE_FORMATS,
        )
        logger.warning("application_date_unparseable", application_date=application_date)
        return UnlockDateResult(ok=False, diagnostics=[Diagnostic.from_error(error)])

    return UnlockDateResult(
        ok=True,
        application_date=parsed.value,
        unlock_date=subtract_months(parsed.value, lead_months),
    )


def clear_writes() -> List[MetaWrite]:
    """Deletes for all three lockout fields."""
    return [MetaWrite(key=key, value=None) for key in LOCKOUT_META_KEYS]


def resolve_lockout(state: LockoutState, today: date) -> LockoutResolution:
    """
    Resolve the stored lockout against today without touching storage.

    Returns the lock state plus the writes the caller must apply, in one
    call, to keep storage consistent with it:
    - No unlock date: unlocked, nothing to write
    - Unparseable unlock date: unlocked, clear all fields, diagnostic
    - today >= unlock date: unlocked, clear all fields
    - Otherwise locked
    """
    if not state.unlock_date or not str(state.unlock_date).strip():
        return LockoutResolution(locked=False)

    parsed = normalize_date(state.unlock_date, UNLOCK_DATE_FORMATS)
    if not parsed.ok:
        error = InconsistentStateError(
            "Stored unlock date is not a valid date",
            details={"unlock_date": state.unlock_date},
        )
        return LockoutResolution(
            locked=False,
            writes=clear_writes(),
            diagnostics=[Diagnostic.from_error(error)],
        )

    if today >= parsed.value:
        return LockoutResolution(
            locked=False, unlock_date=parsed.value, writes=clear_writes()
        )

    return LockoutResolution(locked=True, unlock_date=parsed.value)


def is_locked(today: date, unlock_date: Optional[str]) -> bool:
    """Pure lock check. Callers that own storage should use resolve_lockout."""
    return resolve_lockout(LockoutState(unlock_date=unlock_date), today).locked
