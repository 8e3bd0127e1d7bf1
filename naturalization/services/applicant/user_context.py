"""
Per-request view of one user's profile meta.

Created by the calling request and dropped with it; values read once are
served from the instance cache until clear_cache() or a write through it.
"""

from typing import Dict, Optional

import structlog

from naturalization.domain.fields import (
    LOCKOUT_META_KEYS,
    META_ANUMBER,
    META_DOB,
    META_PARENT_ENTRY_ID,
)
from naturalization.domain.schemas import ApplicantIdentity, MetaWrite
from naturalization.infrastructure.record_store import UserMetaStore

logger = structlog.get_logger(__name__)

IDENTITY_META_KEYS = (META_ANUMBER, META_PARENT_ENTRY_ID, META_DOB)


class UserContext:
    def __init__(self, user_store: UserMetaStore, user_id: str):
        self.user_store = user_store
        self.user_id = user_id
        self._cache: Dict[str, Optional[str]] = {}

    # Getters
    def get_meta(self, key: str) -> Optional[str]:
        if key not in self._cache:
            value = self.user_store.get_user_meta(self.user_id, key)
            # Empty values are cached too
            self._cache[key] = value or None
        return self._cache[key]

    def get_anumber(self) -> Optional[str]:
        return self.get_meta(META_ANUMBER)

    def get_parent_entry_id(self) -> Optional[str]:
        return self.get_meta(META_PARENT_ENTRY_ID)

    def get_dob(self) -> Optional[str]:
        return self.get_meta(META_DOB)

    def get_all(self) -> ApplicantIdentity:
        return ApplicantIdentity(
            anumber=self.get_anumber(),
            dob=self.get_dob(),
            master_record_id=self.get_parent_entry_id(),
        )

    # Setters
    def set_meta(self, key: str, value: str) -> bool:
        ok = bool(self.user_store.set_user_meta(self.user_id, key, str(value)))
        if ok:
            self._cache[key] = str(value)
        return ok

    def set_anumber(self, value: str) -> bool:
        return self.set_meta(META_ANUMBER, value)

    def set_parent_entry_id(self, value: str) -> bool:
        return self.set_meta(META_PARENT_ENTRY_ID, value)

    def set_dob(self, value: str) -> bool:
        return self.set_meta(META_DOB, value)

    def set_all(self, identity: ApplicantIdentity) -> bool:
        """Write the identity fields that are set; skipped fields keep their stored value."""
        values = {
            META_ANUMBER: identity.anumber,
            META_PARENT_ENTRY_ID: identity.master_record_id,
            META_DOB: identity.dob,
        }
        success = True
        for key, value in values.items():
            if value is not None:
                success = self.set_meta(key, value) and success
        return success

    # Delete
    def delete_meta(self, key: str) -> bool:
        self._cache.pop(key, None)
        return bool(self.user_store.delete_user_meta(self.user_id, key))

    def delete_all(self) -> bool:
        """Remove identity and lockout meta in one write."""
        keys = IDENTITY_META_KEYS + LOCKOUT_META_KEYS
        for key in keys:
            self._cache.pop(key, None)
        ok = bool(
            self.user_store.apply_user_meta(
                self.user_id, [MetaWrite(key=key, value=None) for key in keys]
            )
        )
        logger.info("user_context_deleted", user_id=self.user_id, success=ok)
        return ok

    # Validation
    def has_application(self) -> bool:
        return self.get_parent_entry_id() is not None

    def has_anumber(self) -> bool:
        return bool(self.get_anumber())

    def clear_cache(self) -> None:
        self._cache.clear()
