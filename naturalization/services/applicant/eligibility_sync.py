"""
Eligibility sync for the Information About You submission.

Recalculates the determination from the submitted dates, writes it to the
master record and, for eligibility assessments, locks the applicant out
until 6 months before the controlling date.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

import structlog

from naturalization.core.exceptions import MissingReferenceError, RecordStoreError
from naturalization.domain.schemas import Diagnostic
from naturalization.infrastructure.record_store import RecordStore, UserMetaStore
from naturalization.services.applicant.master_record import MasterRecordRepository
from naturalization.services.eligibility.determination import Recalculation, recalculate
from naturalization.services.eligibility.unlock_calculator import (
    compute_unlock_date,
    is_eligibility_assessment,
)
from naturalization.services.lockout.lockout_service import LockoutService
from naturalization.utils.dates import DateInput, format_long

logger = structlog.get_logger(__name__)


def default_lockout_message(controlling_date: Optional[date]) -> str:
    message = (
        "Based on the information you provided, you are not yet eligible to file "
        "for Naturalization."
    )
    if controlling_date:
        message += f" Your earliest filing date is {format_long(controlling_date)}."
    return message


@dataclass
class SyncResult:
    master_record_id: str
    recalculation: Optional[Recalculation] = None
    written: bool = False
    lockout_set: bool = False
    unlock_date: Optional[date] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)


class EligibilitySyncService:
    def __init__(
        self,
        record_store: RecordStore,
        user_store: UserMetaStore,
        lockout_service: Optional[LockoutService] = None,
    ):
        self.master_records = MasterRecordRepository(record_store)
        self.lockout_service = lockout_service or LockoutService(user_store)

    def sync(
        self,
        user_id: str,
        master_record_id: str,
        lpr_date: DateInput,
        marriage_date: DateInput = None,
        spouse_citizen_date: DateInput = None,
        married_value: Optional[str] = None,
        today: Optional[date] = None,
        message: Optional[str] = None,
    ) -> SyncResult:
        """
        Recalculate, persist and lock when needed.

        A missing master record makes this a no-op with a diagnostic. Lockout
        is only ever set here, never cleared: a later non-assessment result
        leaves an existing lock to expire or be cleared by staff.
        """
        today = today or date.today()
        result = SyncResult(master_record_id=str(master_record_id))

        try:
            self.master_records.require(master_record_id)
        except MissingReferenceError as e:
            result.diagnostics.append(Diagnostic.from_error(e))
            return result
        except RecordStoreError as e:
            logger.error(
                "master_record_read_failed",
                master_record_id=master_record_id,
                error=e.message,
            )
            result.diagnostics.append(Diagnostic.from_error(e))
            return result

        recalculation = recalculate(
            lpr_date, marriage_date, spouse_citizen_date, married_value, today
        )
        result.recalculation = recalculation
        determination = recalculation.determination

        try:
            result.written = self.master_records.write_eligibility(
                master_record_id, determination, recalculation.dates
            )
        except RecordStoreError as e:
            logger.error(
                "eligibility_write_failed",
                master_record_id=master_record_id,
                error=e.message,
            )
            return result

        if not is_eligibility_assessment(determination.status, determination.controlling_desc):
            return result

        unlock = compute_unlock_date(
            determination.controlling_date,
            self.lockout_service.unlock_lead_months,
        )
        if not unlock.ok:
            result.diagnostics.extend(unlock.diagnostics)
            return result

        result.unlock_date = unlock.unlock_date
        result.lockout_set = self.lockout_service.set_lockout(
            user_id,
            unlock.iso,
            message or default_lockout_message(determination.controlling_date),
            determination.controlling_desc,
        )
        logger.info(
            "eligibility_assessment_lockout",
            user_id=user_id,
            master_record_id=master_record_id,
            controlling_desc=determination.controlling_desc,
            unlock_date=unlock.iso,
            lockout_set=result.lockout_set,
        )
        return result
