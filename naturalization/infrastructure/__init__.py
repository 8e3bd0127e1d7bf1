from .record_store import (
    InMemoryRecordStore,
    InMemoryUserMetaStore,
    RecordStore,
    UserMetaStore,
)

__all__ = [
    "InMemoryRecordStore",
    "InMemoryUserMetaStore",
    "RecordStore",
    "UserMetaStore",
]
