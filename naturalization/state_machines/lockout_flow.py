"""
Lockout Flow State Machine.

Tracks one applicant's eligibility lockout. State is derived from the stored
unlock date, not stored separately: an unlock date present means locked.
"""

from datetime import date
from typing import Any, Dict, Optional

import structlog
from statemachine import State

from naturalization.domain.fields import (
    META_CONTROLLING_DESC,
    META_PURGATORY_MESSAGE,
    META_UNLOCK_DATE,
)
from naturalization.domain.schemas import LockoutResolution, LockoutState
from naturalization.services.eligibility.unlock_calculator import resolve_lockout

from .base import FlowMachine

logger = structlog.get_logger(__name__)


class LockoutFlowMachine(FlowMachine):
    """
    State machine for the eligibility lockout.

    - lock: store unlock date, message and description as one unit
    - expire: unlock date reached (or unreadable) during a check
    - clear: administrative clear
    Every exit from locked deletes all three lockout fields together.
    """

    unlocked = State(initial=True, value="unlocked")
    locked = State(value="locked")

    lock = unlocked.to(locked) | locked.to.itself()
    expire = locked.to(unlocked)
    clear = locked.to(unlocked) | unlocked.to.itself()

    def __init__(self, profile: Optional[Dict[str, Any]] = None, **kwargs):
        """
        Initialize lockout flow machine.

        Args:
            profile: User meta values keyed by the lockout meta keys
            **kwargs: Additional context (user_id, etc.)
        """
        kwargs.setdefault("start_value", self._derive_state_from_profile(profile or {}))
        super().__init__(profile=profile, **kwargs)

    @staticmethod
    def _derive_state_from_profile(profile: Dict[str, Any]) -> str:
        unlock_date = profile.get(META_UNLOCK_DATE)
        if unlock_date and str(unlock_date).strip():
            return "locked"
        return "unlocked"

    @property
    def lockout_state(self) -> LockoutState:
        return LockoutState(
            unlock_date=self.profile.get(META_UNLOCK_DATE),
            message=self.profile.get(META_PURGATORY_MESSAGE),
            controlling_desc=self.profile.get(META_CONTROLLING_DESC),
        )

    def check(self, today: date) -> LockoutResolution:
        """
        Resolve implicit expiry against today.

        Fires expire when the stored lock is over or unreadable; the returned
        resolution carries the writes that expire queued.
        """
        resolution = resolve_lockout(self.lockout_state, today)
        if self.current_state.id == "locked" and not resolution.locked:
            self.expire(diagnostics=resolution.diagnostics)
            return resolution.model_copy(update={"writes": self.drain_writes()})
        return resolution

    def on_lock(
        self,
        unlock_date: str,
        message: str,
        controlling_desc: Optional[str] = None,
    ):
        """Action: queue the three lockout fields."""
        self.queue_write(META_UNLOCK_DATE, unlock_date)
        self.queue_write(META_PURGATORY_MESSAGE, message)
        # No description means none applies to this lockout
        self.queue_write(META_CONTROLLING_DESC, controlling_desc or None)

    def on_expire(self, diagnostics=None):
        """Action: queue the full clear when the lock is found over."""
        self._queue_clear()
        if diagnostics:
            logger.warning(
                "lockout_cleared_inconsistent_state",
                user_id=self.user_id,
                diagnostics=[d.message for d in diagnostics],
            )

    def on_clear(self):
        """Action: queue the full clear."""
        self._queue_clear()

    def _queue_clear(self):
        for key in (META_UNLOCK_DATE, META_PURGATORY_MESSAGE, META_CONTROLLING_DESC):
            self.queue_write(key, None)

    def after_transition(self, event: str, source: State, target: State):
        if source is None:
            return
        self.log_transition(str(event), source.id, target.id)
