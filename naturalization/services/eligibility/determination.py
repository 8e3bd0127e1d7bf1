"""
Eligibility determination for the Information About You topic.

From the permanent-residence date (LPR), the date of marriage (DM) and the
date the spouse became a citizen (SC), derive the filing milestones, pick
the controlling factor and classify the applicant as eligible now, prepare
to file later, or eligibility assessment (more than a year out).

Comparisons follow the intake form's rules: a missing right-hand date always
compares as reached, a missing left-hand date never does.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from naturalization.domain.fields import (
    MASTER_FIELD_DM_PLUS_2,
    MASTER_FIELD_DMC,
    MASTER_FIELD_LPR_PLUS_2,
    MASTER_FIELD_LPR_PLUS_3,
    MASTER_FIELD_LPR_PLUS_4,
    MASTER_FIELD_LPRC,
    MASTER_FIELD_SC_PLUS_2,
    MASTER_FIELD_SCC,
)
from naturalization.domain.schemas import Determination, EligibilityStatus
from naturalization.utils.dates import (
    ENTRY_DATE_FORMATS,
    DateInput,
    add_years,
    format_us,
    normalize_date,
    subtract_months,
)

MARRIED_YES = "Yes"
MARRIED_NO = "No"

# Residence milestones are reduced by the 90-day early filing allowance
EARLY_FILING_DAYS = 90


@dataclass(frozen=True)
class DerivedDates:
    today: date
    lpr: Optional[date] = None
    lpr2: Optional[date] = None
    lpr3: Optional[date] = None
    lpr4: Optional[date] = None
    lprc: Optional[date] = None
    lpr36: Optional[date] = None
    lprc6: Optional[date] = None
    dm: Optional[date] = None
    dm2: Optional[date] = None
    dmc: Optional[date] = None
    dmc6: Optional[date] = None
    sc: Optional[date] = None
    sc2: Optional[date] = None
    scc: Optional[date] = None
    scc6: Optional[date] = None

    def storage_fields(self) -> Dict[str, str]:
        """Master record field id -> m/d/Y text for the synced derived dates."""
        return {
            MASTER_FIELD_LPR_PLUS_2: format_us(self.lpr2),
            MASTER_FIELD_LPR_PLUS_3: format_us(self.lpr3),
            MASTER_FIELD_LPR_PLUS_4: format_us(self.lpr4),
            MASTER_FIELD_LPRC: format_us(self.lprc),
            MASTER_FIELD_DM_PLUS_2: format_us(self.dm2),
            MASTER_FIELD_DMC: format_us(self.dmc),
            MASTER_FIELD_SC_PLUS_2: format_us(self.sc2),
            MASTER_FIELD_SCC: format_us(self.scc),
        }


@dataclass(frozen=True)
class Recalculation:
    dates: DerivedDates
    determination: Determination
    married_value: str


def _add(value: Optional[date], years: int, day_adjustment: int = 0) -> Optional[date]:
    return add_years(value, years, day_adjustment, roll_over=True) if value else None


def _back(value: Optional[date], months: int) -> Optional[date]:
    return subtract_months(value, months) if value else None


def _reached(left: Optional[date], right: Optional[date]) -> bool:
    if right is None:
        return True
    if left is None:
        return False
    return left >= right


def compute_derived_dates(
    today: date,
    lpr: Optional[date] = None,
    dm: Optional[date] = None,
    sc: Optional[date] = None,
) -> DerivedDates:
    lpr3 = _add(lpr, 3, -EARLY_FILING_DAYS)
    lprc = _add(lpr, 5, -EARLY_FILING_DAYS)
    dmc = _add(dm, 3)
    scc = _add(sc, 3)
    return DerivedDates(
        today=today,
        lpr=lpr,
        lpr2=_add(lpr, 2, -EARLY_FILING_DAYS),
        lpr3=lpr3,
        lpr4=_add(lpr, 4, -EARLY_FILING_DAYS),
        lprc=lprc,
        lpr36=_back(lpr3, 6),
        lprc6=_back(lprc, 6),
        dm=dm,
        dm2=_add(dm, 2),
        dmc=dmc,
        dmc6=_back(dmc, 6),
        sc=sc,
        sc2=_add(sc, 2),
        scc=scc,
        scc6=_back(scc, 6),
    )


def _initial_factor(dates: DerivedDates, married_value: str) -> Optional[str]:
    if married_value == MARRIED_NO:
        return "LPR"
    if married_value != MARRIED_YES:
        return None

    if _reached(dates.dmc, dates.scc):
        if _reached(dates.lprc, dates.dmc) or _reached(dates.lpr2, dates.dmc):
            return "DM"
        return "LPRM"

    if _reached(dates.lprc, dates.scc) or _reached(dates.lpr2, dates.scc):
        return "SC"
    return "LPRS"


def _spouse_branch(
    dates: DerivedDates, prefix: str, three_year: Optional[date], two_year: Optional[date]
) -> Determination:
    """Shared table for the DM and SC factors. prefix is 'DMC' or 'SCC'."""
    today = dates.today
    eligible = EligibilityStatus.ELIGIBLE_NOW.value
    later = EligibilityStatus.PREPARE_FILE_LATER.value
    assessment = EligibilityStatus.ELIGIBILITY_ASSESSMENT.value

    def result(controlling: Optional[date], desc: str, status: str) -> Determination:
        return Determination(
            controlling_factor=prefix[:2],
            controlling_date=controlling,
            controlling_desc=desc,
            status=status,
        )

    if _reached(today, three_year) and _reached(today, dates.lpr3):
        return result(three_year, f"{prefix} - 2A", eligible)
    if _reached(today, three_year):
        return result(dates.lpr3, "LPR3 - 2B", later)
    if _reached(today, two_year):
        if _reached(two_year, dates.lpr3):
            return result(three_year, f"{prefix} - 2D", later)
        if _reached(two_year, dates.lpr2):
            return result(three_year, f"{prefix} - 2E", later)
        if _reached(today, dates.lpr2):
            return result(dates.lpr3, "LPR3 - 2F", later)
        return result(dates.lpr3, "LPR3 - 2G", assessment)
    if _reached(two_year, dates.lpr2):
        return result(three_year, f"{prefix} - 2H", assessment)
    return result(dates.lpr3, "LPR3 - 2I", assessment)


def determine_controlling_factor(dates: DerivedDates, married_value: str) -> Determination:
    """
    Classify an applicant from their derived dates.

    Args:
        dates: Output of compute_derived_dates
        married_value: Effective "Yes" / "No" answer to the married question

    Returns:
        Determination. Everything is empty when no LPR date is known. When
        exactly one of DM and SC is known the factor is kept but the date,
        description and status are cleared.
    """
    if dates.lpr is None:
        return Determination()

    today = dates.today
    factor = _initial_factor(dates, married_value)
    determination = Determination(controlling_factor=factor or "")

    if factor == "LPR":
        if _reached(today, dates.lprc):
            desc, status = "LPRC - 1A", EligibilityStatus.ELIGIBLE_NOW.value
        elif _reached(today, dates.lpr4):
            desc, status = "LPRC - 1B", EligibilityStatus.PREPARE_FILE_LATER.value
        else:
            desc, status = "LPRC - 1C", EligibilityStatus.ELIGIBILITY_ASSESSMENT.value
        determination = Determination(
            controlling_factor=factor,
            controlling_date=dates.lprc,
            controlling_desc=desc,
            status=status,
        )

    has_dm = dates.dm is not None
    has_sc = dates.sc is not None

    if has_dm != has_sc:
        return Determination(controlling_factor=factor or "")

    if not (has_dm and has_sc):
        return determination

    if factor in ("LPRM", "LPRS"):
        label = "Married" if factor == "LPRM" else "Spouse"
        if _reached(today, dates.lpr4):
            desc = f"LPRC - {label} No Benefit PF"
            status = EligibilityStatus.PREPARE_FILE_LATER.value
        else:
            desc = f"LPRC - {label} No Benefit EA"
            status = EligibilityStatus.ELIGIBILITY_ASSESSMENT.value
        return Determination(
            controlling_factor=factor,
            controlling_date=dates.lprc,
            controlling_desc=desc,
            status=status,
        )

    if factor == "DM":
        return _spouse_branch(dates, "DMC", dates.dmc, dates.dm2)

    if factor == "SC":
        return _spouse_branch(dates, "SCC", dates.scc, dates.sc2)

    return determination


def recalculate(
    lpr_text: DateInput,
    dm_text: DateInput,
    sc_text: DateInput,
    married_value: Optional[str],
    today: date,
) -> Recalculation:
    """
    Full recalculation from the raw entry values.

    Once today reaches LPRC the applicant is treated as unmarried, since the
    5-year rule is already met. The stored married answer is not changed.
    """
    dates = compute_derived_dates(
        today=today,
        lpr=normalize_date(lpr_text, ENTRY_DATE_FORMATS).value,
        dm=normalize_date(dm_text, ENTRY_DATE_FORMATS).value,
        sc=normalize_date(sc_text, ENTRY_DATE_FORMATS).value,
    )

    effective_married = (married_value or "").strip()
    if dates.lprc is not None and today >= dates.lprc:
        effective_married = MARRIED_NO

    return Recalculation(
        dates=dates,
        determination=determine_controlling_factor(dates, effective_married),
        married_value=effective_married,
    )
