"""
Record store and user profile store contracts.

The engine only needs a logical key-value view of the forms platform:
(record id, field id) -> text for form records and (user id, key) -> text
for user meta. In-memory implementations back tests and local runs.
"""

import itertools
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

import structlog

from naturalization.domain.schemas import MetaWrite

logger = structlog.get_logger(__name__)


class RecordStore(Protocol):
    def read_field(self, record_id: str, field_id: str) -> Optional[str]: ...

    def read_fields(self, record_id: str, field_ids: Sequence[str]) -> Dict[str, str]: ...

    def write_field(self, record_id: str, field_id: str, value: str) -> bool: ...

    def find_records_by_field(self, form_id: int, field_id: str, value: str) -> List[str]: ...

    def record_exists(self, record_id: str) -> bool: ...


class UserMetaStore(Protocol):
    def get_user_meta(self, user_id: str, key: str) -> Optional[str]: ...

    def set_user_meta(self, user_id: str, key: str, value: str) -> bool: ...

    def delete_user_meta(self, user_id: str, key: str) -> bool: ...

    def apply_user_meta(self, user_id: str, writes: Iterable[MetaWrite]) -> bool:
        """Apply several sets/deletes as one write."""
        ...


class InMemoryRecordStore:
    """Dict-backed record store. Record ids are assigned sequentially as strings."""

    def __init__(self):
        self._forms: Dict[str, int] = {}
        self._fields: Dict[str, Dict[str, str]] = {}
        self._ids = itertools.count(1)

    def create_record(self, form_id: int, fields: Optional[Dict[str, str]] = None) -> str:
        record_id = str(next(self._ids))
        self._forms[record_id] = form_id
        self._fields[record_id] = {k: str(v) for k, v in (fields or {}).items()}
        return record_id

    def record_exists(self, record_id: str) -> bool:
        return str(record_id) in self._forms

    def read_field(self, record_id: str, field_id: str) -> Optional[str]:
        return self._fields.get(str(record_id), {}).get(str(field_id))

    def read_fields(self, record_id: str, field_ids: Sequence[str]) -> Dict[str, str]:
        fields = self._fields.get(str(record_id), {})
        return {fid: fields[fid] for fid in map(str, field_ids) if fid in fields}

    def write_field(self, record_id: str, field_id: str, value: str) -> bool:
        record_id = str(record_id)
        if record_id not in self._forms:
            logger.warning("write_field_missing_record", record_id=record_id, field_id=field_id)
            return False
        self._fields[record_id][str(field_id)] = value
        return True

    def find_records_by_field(self, form_id: int, field_id: str, value: str) -> List[str]:
        return [
            record_id
            for record_id, fields in self._fields.items()
            if self._forms[record_id] == form_id and fields.get(str(field_id)) == str(value)
        ]


class InMemoryUserMetaStore:
    """Dict-backed user profile store."""

    def __init__(self):
        self._meta: Dict[str, Dict[str, str]] = {}

    def get_user_meta(self, user_id: str, key: str) -> Optional[str]:
        return self._meta.get(str(user_id), {}).get(key)

    def set_user_meta(self, user_id: str, key: str, value: str) -> bool:
        self._meta.setdefault(str(user_id), {})[key] = value
        return True

    def delete_user_meta(self, user_id: str, key: str) -> bool:
        self._meta.get(str(user_id), {}).pop(key, None)
        return True

    def apply_user_meta(self, user_id: str, writes: Iterable[MetaWrite]) -> bool:
        # Build the new row first so a bad write leaves the old one untouched
        row = dict(self._meta.get(str(user_id), {}))
        for write in writes:
            if write.value is None:
                row.pop(write.key, None)
            else:
                row[write.key] = write.value
        self._meta[str(user_id)] = row
        return True

    def snapshot(self, user_id: str) -> Dict[str, str]:
        return dict(self._meta.get(str(user_id), {}))
