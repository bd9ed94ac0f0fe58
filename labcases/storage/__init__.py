"""Record and audit stores."""

from .base import AuditStore, RecordStore
from .memory import InMemoryAuditStore, InMemoryRecordStore
from .sql import SqlAuditStore, SqlRecordStore, create_store_engine

__all__ = [
    "AuditStore",
    "RecordStore",
    "InMemoryAuditStore",
    "InMemoryRecordStore",
    "SqlAuditStore",
    "SqlRecordStore",
    "create_store_engine",
]
