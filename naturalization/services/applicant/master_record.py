"""
Master record access.

Reads go to the record store every time: the controlling factor can be
corrected by staff at any point, so nothing here is cached.
"""

from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from naturalization.core.exceptions import MissingReferenceError
from naturalization.domain.fields import (
    CHILD_PARENT_FIELDS,
    FORM_RESIDENCES,
    FORM_TIME_OUTSIDE,
    MASTER_FIELD_APP_DATE_DESCRIPTION,
    MASTER_FIELD_APPLICATION_DATE,
    MASTER_FIELD_CONTROLLING_FACTOR,
    MASTER_FIELD_ELIGIBILITY_STATUS,
    MASTER_FIELD_TODAYS_DATE,
    RES_FIELD_DURATION,
    RES_FIELD_FROM_DATE,
    RES_FIELD_STATE,
    RES_FIELD_TO_DATE,
    TOC_FIELD_COUNTRIES,
    TOC_FIELD_DEPARTURE_DATE,
    TOC_FIELD_DURATION,
    TOC_FIELD_RETURN_DATE,
)
from naturalization.domain.schemas import (
    Determination,
    MasterRecord,
    ResidenceInterval,
    TravelInterval,
)
from naturalization.infrastructure.record_store import RecordStore
from naturalization.services.eligibility import controlling_factor as factors
from naturalization.utils.dates import format_us

if TYPE_CHECKING:
    from naturalization.services.eligibility.determination import DerivedDates

logger = structlog.get_logger(__name__)

MASTER_FIELDS = (
    MASTER_FIELD_CONTROLLING_FACTOR,
    MASTER_FIELD_APPLICATION_DATE,
    MASTER_FIELD_APP_DATE_DESCRIPTION,
    MASTER_FIELD_ELIGIBILITY_STATUS,
)


def _to_number(value: Optional[str]) -> Optional[float]:
    if value is None or not str(value).strip():
        return None
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        return None


def _to_days(value: Optional[str]) -> Optional[int]:
    number = _to_number(value)
    return int(number) if number is not None else None


class MasterRecordRepository:
    def __init__(self, record_store: RecordStore):
        self.record_store = record_store

    def get(self, record_id: str) -> Optional[MasterRecord]:
        """Master record, or None when the id does not exist."""
        if not record_id or not self.record_store.record_exists(record_id):
            logger.warning("master_record_missing", master_record_id=record_id)
            return None

        fields = self.record_store.read_fields(record_id, MASTER_FIELDS)
        return MasterRecord(
            record_id=str(record_id),
            controlling_factor=fields.get(MASTER_FIELD_CONTROLLING_FACTOR) or None,
            application_date=fields.get(MASTER_FIELD_APPLICATION_DATE) or None,
            controlling_desc=fields.get(MASTER_FIELD_APP_DATE_DESCRIPTION) or None,
            eligibility_status=fields.get(MASTER_FIELD_ELIGIBILITY_STATUS) or None,
        )

    def require(self, record_id: str) -> MasterRecord:
        record = self.get(record_id)
        if record is None:
            raise MissingReferenceError(
                "Master record not found",
                details={"master_record_id": record_id},
            )
        return record

    def controlling_factor(self, record_id: str) -> Optional[str]:
        return self.record_store.read_field(record_id, MASTER_FIELD_CONTROLLING_FACTOR) or None

    def application_date(self, record_id: str) -> Optional[str]:
        return self.record_store.read_field(record_id, MASTER_FIELD_APPLICATION_DATE) or None

    def lookback_years(self, record_id: str) -> int:
        return factors.lookback_years(self.controlling_factor(record_id))

    def days_required(self, record_id: str) -> int:
        return factors.days_required(self.controlling_factor(record_id))

    def is_three_year_filer(self, record_id: str) -> bool:
        return factors.is_three_year(self.controlling_factor(record_id))

    # Child records
    def child_record_ids(self, record_id: str, child_form_id: int) -> List[str]:
        parent_field = CHILD_PARENT_FIELDS.get(child_form_id)
        if parent_field is None:
            return []
        return self.record_store.find_records_by_field(child_form_id, parent_field, str(record_id))

    def child_travel_intervals(self, record_id: str) -> List[TravelInterval]:
        field_ids = (
            TOC_FIELD_DEPARTURE_DATE,
            TOC_FIELD_RETURN_DATE,
            TOC_FIELD_DURATION,
            TOC_FIELD_COUNTRIES,
        )
        intervals = []
        for child_id in self.child_record_ids(record_id, FORM_TIME_OUTSIDE):
            fields = self.record_store.read_fields(child_id, field_ids)
            intervals.append(
                TravelInterval(
                    record_id=child_id,
                    departure_date=fields.get(TOC_FIELD_DEPARTURE_DATE) or None,
                    return_date=fields.get(TOC_FIELD_RETURN_DATE) or None,
                    duration_days=_to_days(fields.get(TOC_FIELD_DURATION)),
                    countries=fields.get(TOC_FIELD_COUNTRIES) or None,
                )
            )
        return intervals

    def child_residence_intervals(self, record_id: str) -> List[ResidenceInterval]:
        field_ids = (RES_FIELD_FROM_DATE, RES_FIELD_TO_DATE, RES_FIELD_DURATION, RES_FIELD_STATE)
        intervals = []
        for child_id in self.child_record_ids(record_id, FORM_RESIDENCES):
            fields = self.record_store.read_fields(child_id, field_ids)
            intervals.append(
                ResidenceInterval(
                    record_id=child_id,
                    start_date=fields.get(RES_FIELD_FROM_DATE) or None,
                    end_date=fields.get(RES_FIELD_TO_DATE) or None,
                    duration_days=_to_days(fields.get(RES_FIELD_DURATION)),
                    state=fields.get(RES_FIELD_STATE) or None,
                )
            )
        return intervals

    def sum_child_field(self, record_id: str, child_form_id: int, field_id: str) -> float:
        """Sum of a numeric field over the child records; blank or non-numeric values count as 0."""
        total = 0.0
        for child_id in self.child_record_ids(record_id, child_form_id):
            total += _to_number(self.record_store.read_field(child_id, field_id)) or 0.0
        return total

    def write_eligibility(
        self,
        record_id: str,
        determination: Determination,
        dates: Optional["DerivedDates"] = None,
    ) -> bool:
        """
        Write the determination and, when given, the derived milestone dates.

        Blank derived dates are skipped so earlier values are not wiped.
        """
        values: Dict[str, str] = {
            MASTER_FIELD_CONTROLLING_FACTOR: determination.controlling_factor,
            MASTER_FIELD_APPLICATION_DATE: format_us(determination.controlling_date),
            MASTER_FIELD_APP_DATE_DESCRIPTION: determination.controlling_desc,
            MASTER_FIELD_ELIGIBILITY_STATUS: determination.status,
        }
        if dates is not None:
            values[MASTER_FIELD_TODAYS_DATE] = format_us(dates.today)
            values.update({k: v for k, v in dates.storage_fields().items() if v})

        success = True
        for field_id, value in values.items():
            success = self.record_store.write_field(record_id, field_id, value) and success

        logger.info(
            "master_eligibility_written",
            master_record_id=record_id,
            controlling_factor=determination.controlling_factor,
            controlling_desc=determination.controlling_desc,
            status=determination.status,
            success=success,
        )
        return success
