"""Change detection and the audit trail."""

from .diff import ChangeDetector, canonical, diff
from .audit_log import AuditLogReader, AuditLogWriter

__all__ = [
    "ChangeDetector",
    "canonical",
    "diff",
    "AuditLogReader",
    "AuditLogWriter",
]
