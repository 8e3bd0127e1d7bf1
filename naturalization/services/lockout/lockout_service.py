"""
Lockout service.

Reads and writes the three lockout fields in the user profile store. Every
multi-field change goes through a single apply_user_meta call, so the fields
are always set or cleared together.

Store failures never propagate: a profile that cannot be read is treated as
unlocked, and a change that cannot be written reports False.
"""

from datetime import date
from typing import Dict, Iterable, Optional

import structlog

from naturalization.core.config import get_settings
from naturalization.core.exceptions import RecordStoreError
from naturalization.domain.fields import (
    LOCKOUT_META_KEYS,
    META_PURGATORY_MESSAGE,
    META_UNLOCK_DATE,
)
from naturalization.domain.schemas import (
    Diagnostic,
    LockoutResolution,
    MetaWrite,
    WaitingRoomMessage,
    WaitingRoomMessageKind,
)
from naturalization.infrastructure.record_store import UserMetaStore
from naturalization.state_machines.lockout_flow import LockoutFlowMachine
from naturalization.utils.dates import (
    DateFormat,
    UNLOCK_DATE_FORMATS,
    format_long,
    normalize_date,
)

logger = structlog.get_logger(__name__)

DOCUMENTS_NOTE = (
    "In the meantime, you may access the Documents section to gather documents "
    "which will be used in support of your application."
)


class LockoutService:
    """Eligibility lockout for one user profile store."""

    def __init__(self, user_store: UserMetaStore, unlock_lead_months: Optional[int] = None):
        self.user_store = user_store
        if unlock_lead_months is None:
            unlock_lead_months = get_settings().unlock_lead_months
        self.unlock_lead_months = unlock_lead_months

    def _load_profile(self, user_id: str) -> Dict[str, Optional[str]]:
        return {key: self.user_store.get_user_meta(user_id, key) for key in LOCKOUT_META_KEYS}

    def _machine(self, user_id: str) -> LockoutFlowMachine:
        return LockoutFlowMachine(profile=self._load_profile(user_id), user_id=user_id)

    def _read_meta(self, user_id: str, key: str) -> Optional[str]:
        try:
            return self.user_store.get_user_meta(user_id, key) or None
        except RecordStoreError as e:
            logger.error("lockout_read_failed", user_id=user_id, key=key, error=e.message)
            return None

    def _apply(self, user_id: str, writes: Iterable[MetaWrite]) -> bool:
        writes = list(writes)
        if not writes:
            return True
        try:
            return bool(self.user_store.apply_user_meta(user_id, writes))
        except RecordStoreError as e:
            logger.error(
                "lockout_write_failed",
                user_id=user_id,
                keys=[w.key for w in writes],
                error=e.message,
            )
            return False

    def set_lockout(
        self,
        user_id: str,
        unlock_date_text: str,
        message: str,
        controlling_desc: Optional[str] = None,
    ) -> bool:
        """
        Lock the user out until unlock_date_text.

        The date is accepted as ISO or US month/day/year and stored as ISO.
        An unparseable date rejects the whole operation; nothing is written.
        """
        parsed = normalize_date(unlock_date_text, UNLOCK_DATE_FORMATS)
        if not parsed.ok:
            logger.warning(
                "lockout_rejected_invalid_date",
                user_id=user_id,
                unlock_date=unlock_date_text,
            )
            return False

        try:
            machine = self._machine(user_id)
        except RecordStoreError as e:
            logger.error("lockout_read_failed", user_id=user_id, error=e.message)
            return False
        machine.lock(
            unlock_date=parsed.iso,
            message=message,
            controlling_desc=controlling_desc,
        )
        if not self._apply(user_id, machine.drain_writes()):
            return False

        logger.info(
            "lockout_set",
            user_id=user_id,
            unlock_date=parsed.iso,
            controlling_desc=controlling_desc,
        )
        return True

    def clear_lockout(self, user_id: str) -> bool:
        """Administrative clear of all three lockout fields."""
        try:
            machine = self._machine(user_id)
        except RecordStoreError as e:
            logger.error("lockout_read_failed", user_id=user_id, error=e.message)
            return False
        machine.clear()
        if not self._apply(user_id, machine.drain_writes()):
            return False
        logger.info("lockout_cleared", user_id=user_id, reason="administrative")
        return True

    def check_lockout(self, user_id: str, today: Optional[date] = None) -> LockoutResolution:
        """
        Resolve the stored lockout, clearing it first when it is over.

        The clear is applied before returning, so a caller never sees a lock
        that has already been found expired. An unreadable profile resolves
        as unlocked with a record_store_error diagnostic.
        """
        today = today or date.today()
        try:
            machine = self._machine(user_id)
        except RecordStoreError as e:
            logger.error("lockout_read_failed", user_id=user_id, error=e.message)
            return LockoutResolution(locked=False, diagnostics=[Diagnostic.from_error(e)])
        resolution = machine.check(today)

        if resolution.writes:
            if self._apply(user_id, resolution.writes):
                logger.info(
                    "lockout_cleared",
                    user_id=user_id,
                    reason="invalid_date" if resolution.diagnostics else "expired",
                    unlock_date=resolution.unlock_date.isoformat()
                    if resolution.unlock_date
                    else None,
                )

        for diagnostic in resolution.diagnostics:
            logger.warning(
                "unlock_date_unparseable",
                user_id=user_id,
                code=diagnostic.code,
                context=diagnostic.context,
            )
        return resolution

    def is_locked_out(self, user_id: Optional[str], today: Optional[date] = None) -> bool:
        if not user_id:
            return False
        return self.check_lockout(user_id, today).locked

    def get_unlock_date(self, user_id: str) -> Optional[str]:
        return self._read_meta(user_id, META_UNLOCK_DATE)

    def get_formatted_unlock_date(self, user_id: str) -> Optional[str]:
        """'March 15, 2025' style; a stored value that is not ISO is returned as is."""
        unlock_date = self.get_unlock_date(user_id)
        if not unlock_date:
            return None

        parsed = normalize_date(unlock_date, (DateFormat.ISO,))
        if not parsed.ok:
            return unlock_date
        return format_long(parsed.value)

    def get_purgatory_message(self, user_id: str) -> Optional[str]:
        return self._read_meta(user_id, META_PURGATORY_MESSAGE)

    def waiting_room_message(self, user_id: str, today: Optional[date] = None) -> WaitingRoomMessage:
        """
        Text for the waiting room page.

        - stored: the message saved with the lockout
        - generic: locked without a stored message
        - not_locked: user has full access
        """
        locked = self.is_locked_out(user_id, today)
        unlock_display = self.get_formatted_unlock_date(user_id) if locked else None
        message = self.get_purgatory_message(user_id)

        if message:
            return WaitingRoomMessage(
                kind=WaitingRoomMessageKind.STORED,
                text=message,
                unlock_date_display=unlock_display,
            )

        if locked:
            lines = [
                "Based on the information you provided, you are not yet eligible "
                "to file for Naturalization."
            ]
            if unlock_display:
                lines.append(
                    f"Full access to your application will be restored on "
                    f"{unlock_display}, which is {self.unlock_lead_months} months "
                    f"prior to your earliest filing date."
                )
            else:
                lines.append(
                    "Please check back later when you are closer to your filing "
                    "eligibility date."
                )
            lines.append(DOCUMENTS_NOTE)
            return WaitingRoomMessage(
                kind=WaitingRoomMessageKind.GENERIC,
                text="\n\n".join(lines),
                unlock_date_display=unlock_display,
            )

        return WaitingRoomMessage(
            kind=WaitingRoomMessageKind.NOT_LOCKED,
            text=(
                "You currently have full access to your naturalization application. "
                "Please continue to the Application Dashboard to proceed with your "
                "application."
            ),
        )
