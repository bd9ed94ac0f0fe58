"""Exceptions raised by the case tracking and payment core."""

from typing import Any, Optional


class LabCasesError(Exception):
    """Base exception carrying a message and optional structured details."""
    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRateError(LabCasesError):
    """Exchange rate missing or not strictly positive."""
    def __init__(self, rate: Any):
        super().__init__(f"Invalid exchange rate: {rate!r}", details={"rate": str(rate)})
        self.rate = rate


class RecordValidationError(LabCasesError):
    """A record or write request violates a data-model invariant."""


class RecordNotFoundError(LabCasesError):
    """No record exists under the requested id."""
    def __init__(self, record_id: str):
        super().__init__(f"Record not found: {record_id}", details={"record_id": record_id})
        self.record_id = record_id


class ConflictError(LabCasesError):
    """The record changed since the caller read it."""
    def __init__(self, record_id: str, expected_version: int, actual_version: Optional[int]):
        super().__init__(
            f"Record {record_id} is at version {actual_version}, expected {expected_version}",
            details={
                "record_id": record_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class StoreError(LabCasesError):
    """Backend I/O failure in a record or audit store."""


class ExchangeRateError(LabCasesError):
    """The exchange rate provider failed or returned unusable data."""
    def __init__(self, message: str, status_code: int = 0, details: Any = None):
        super().__init__(message, details=details)
        self.status_code = status_code
