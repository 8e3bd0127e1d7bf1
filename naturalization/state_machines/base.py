"""
Base state machine class for applicant flows.

Provides common functionality for pending-write collection, logging, and flow info retrieval.
"""

from typing import Any, Dict, List, Optional

import structlog
from statemachine import StateMachine

from naturalization.domain.schemas import MetaWrite


class FlowMachine(StateMachine):
    """
    Base class for applicant flow state machines.

    Features:
    - Actions queue MetaWrites instead of writing, so callers apply them in one call
    - Structured logging on every transition
    - get_flow_info() for admin/presentation responses
    """

    def __init__(
        self,
        profile: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
        **kwargs,
    ):
        """
        Initialize flow machine.

        Args:
            profile: Stored user meta values the flow starts from
            user_id: User ID for logging
            **kwargs: Additional context passed to StateMachine (start_value, ...)
        """
        self.profile = dict(profile or {})
        self.user_id = user_id
        self.logger = structlog.get_logger(__name__)
        self.pending_writes: List[MetaWrite] = []
        super().__init__(**kwargs)

    def queue_write(self, key: str, value: Optional[str]) -> None:
        self.pending_writes.append(MetaWrite(key=key, value=value))
        self.profile[key] = value

    def drain_writes(self) -> List[MetaWrite]:
        """Return and forget the writes queued so far."""
        writes, self.pending_writes = self.pending_writes, []
        return writes

    def get_flow_info(self) -> Dict[str, Any]:
        """
        Returns current state + allowed events.

        Returns:
            Dict with state, allowed_events and the profile values the flow tracks
        """
        events = [event.id for event in self.allowed_events]
        return {
            "state": self.current_state.id,
            "allowed_events": list(dict.fromkeys(events)),
            "profile": {k: v for k, v in self.profile.items() if v is not None},
            "pending_writes": len(self.pending_writes),
        }

    def log_transition(self, event: str, from_state: str, to_state: str, **extra: Any):
        """
        Log state transition with structured logging.

        Args:
            event: Event name that triggered transition
            from_state: Previous state
            to_state: New state
        """
        self.logger.info(
            "state_transition",
            machine=type(self).__name__,
            transition_event=event,
            from_state=from_state,
            to_state=to_state,
            user_id=self.user_id,
            **extra,
        )
