from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from naturalization.core.exceptions import DomainException


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase"""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CamelCaseModel(BaseModel):
    """Base model with camelCase alias configuration"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Allow both snake_case and camelCase
        use_enum_values=True,
    )


class Diagnostic(CamelCaseModel):
    """A recoverable data problem observed while evaluating one applicant."""

    code: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: DomainException) -> "Diagnostic":
        return cls(code=error.code, message=error.message, context=dict(error.details))


# Applicant & records
class ApplicantIdentity(CamelCaseModel):
    anumber: Optional[str] = None
    dob: Optional[str] = None
    master_record_id: Optional[str] = None


class MasterRecord(CamelCaseModel):
    record_id: str
    controlling_factor: Optional[str] = None
    application_date: Optional[str] = None
    controlling_desc: Optional[str] = None
    eligibility_status: Optional[str] = None


class ResidenceInterval(CamelCaseModel):
    """One residence row. Dates are the raw stored text; an empty end date means current."""

    record_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    duration_days: Optional[int] = None
    state: Optional[str] = None


class TravelInterval(CamelCaseModel):
    """One trip outside the US. duration_days is precomputed upstream."""

    record_id: Optional[str] = None
    departure_date: Optional[str] = None
    return_date: Optional[str] = None
    duration_days: Optional[int] = None
    countries: Optional[str] = None


# Lockout
class LockoutState(CamelCaseModel):
    """Lockout fields as stored in the user profile store."""

    unlock_date: Optional[str] = None
    message: Optional[str] = None
    controlling_desc: Optional[str] = None


class MetaWrite(CamelCaseModel):
    """A pending user meta write. value=None deletes the key."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: Optional[str] = None

    @property
    def is_delete(self) -> bool:
        return self.value is None


class LockoutResolution(CamelCaseModel):
    locked: bool
    unlock_date: Optional[date] = None
    writes: List[MetaWrite] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)


class UnlockDateResult(CamelCaseModel):
    ok: bool
    application_date: Optional[date] = None
    unlock_date: Optional[date] = None
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def iso(self) -> Optional[str]:
        return self.unlock_date.isoformat() if self.unlock_date else None


class WaitingRoomMessageKind(str, Enum):
    STORED = "stored"
    GENERIC = "generic"
    NOT_LOCKED = "not_locked"


class WaitingRoomMessage(CamelCaseModel):
    kind: WaitingRoomMessageKind
    text: str
    unlock_date_display: Optional[str] = None


# Eligibility determination
class EligibilityStatus(str, Enum):
    ELIGIBLE_NOW = "Eligible Now"
    PREPARE_FILE_LATER = "Prepare, but file later"
    ELIGIBILITY_ASSESSMENT = "Eligibility Assessment"


class Determination(CamelCaseModel):
    controlling_factor: str = ""
    controlling_date: Optional[date] = None
    controlling_desc: str = ""
    status: str = ""


# Presence analysis
class LongTrip(CamelCaseModel):
    trip: TravelInterval
    days: int


class LongTripReport(CamelCaseModel):
    threshold_days: int
    long_trips: List[LongTrip] = Field(default_factory=list)
    short_trips: List[LongTrip] = Field(default_factory=list)
    unparseable: List[TravelInterval] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)


class ResidenceGap(CamelCaseModel):
    after: ResidenceInterval
    before: ResidenceInterval
    days: int
    exceeds_limit: bool = False


class GapReport(CamelCaseModel):
    gaps: List[ResidenceGap] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)


class TripOverlap(CamelCaseModel):
    first: TravelInterval
    second: TravelInterval


class PresenceStatus(CamelCaseModel):
    meets_requirement: bool
    days_required: int
    days_present: int
    days_abroad: int
    elapsed_days: int
    shortfall_days: int = 0
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    earliest_filing_date: Optional[date] = None


class ApplicantPresenceReport(CamelCaseModel):
    master_record_id: str
    controlling_factor: Optional[str] = None
    application_date: Optional[date] = None
    lookback_years: int
    days_required: int
    reference_date: date
    total_days_abroad: int = 0
    days_abroad_in_window: int = 0
    presence: Optional[PresenceStatus] = None
    long_trips: Optional[LongTripReport] = None
    residence_gaps: Optional[GapReport] = None
    overlapping_trips: List[TripOverlap] = Field(default_factory=list)
    filing_date_after_long_trip: Optional[date] = None
    messages: List[str] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.messages)
