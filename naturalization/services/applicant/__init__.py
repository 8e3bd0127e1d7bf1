from naturalization.services.applicant.eligibility_sync import EligibilitySyncService
from naturalization.services.applicant.master_record import MasterRecordRepository
from naturalization.services.applicant.user_context import UserContext

__all__ = ["EligibilitySyncService", "MasterRecordRepository", "UserContext"]
