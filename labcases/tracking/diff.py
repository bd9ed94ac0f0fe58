"""
Change-Diff Detector.

Computes the minimal change set between the last known persisted values
of a record and a partial map of proposed values. Only keys present in
the proposal are considered, in the proposal's order.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Mapping, Optional

from ..config import get_settings
from ..models.audit import Change


class ChangeDetector:
    """Deterministic, I/O free field comparison."""

    def __init__(self, numeric_tolerance: Optional[Decimal] = None):
        self.tolerance = (
            Decimal(numeric_tolerance) if numeric_tolerance is not None
            else get_settings().diff_numeric_tolerance
        )

    def diff(
        self,
        current: Mapping[str, Any],
        proposed: Mapping[str, Any],
        labels: Optional[Mapping[str, str]] = None,
    ) -> List[Change]:
        """
        Return one Change per proposed field whose value actually differs.

        Args:
            current: Last known persisted field values
            proposed: Edited subset of fields
            labels: Human readable field labels (falls back to the key)
        """
        labels = labels or {}
        changes = []

        for key, new_value in proposed.items():
            old_value = current.get(key)
            if self.values_equal(old_value, new_value):
                continue
            changes.append(Change(
                field=key,
                field_label=labels.get(key, key),
                old_value=_normalize_empty(old_value),
                new_value=_normalize_empty(new_value),
            ))

        return changes

    def values_equal(self, old: Any, new: Any) -> bool:
        """Value equality with numeric tolerance and empty/None folding."""
        old = _normalize_empty(old)
        new = _normalize_empty(new)

        if old is None or new is None:
            return old is None and new is None

        if isinstance(old, Enum):
            old = old.value
        if isinstance(new, Enum):
            new = new.value

        if isinstance(old, bool) or isinstance(new, bool):
            return type(old) is type(new) and old == new

        if isinstance(old, (date, datetime)) or isinstance(new, (date, datetime)):
            return canonical(old) == canonical(new)

        old_number = _as_number(old)
        new_number = _as_number(new)
        if old_number is not None and new_number is not None and (
            _is_number(old) or _is_number(new)
        ):
            return abs(old_number - new_number) <= self.tolerance

        return str(old) == str(new)


def canonical(value: Any) -> Optional[str]:
    """
    Canonical string form of a field value, as stored in the audit trail.

    Decimals keep their plain notation, dates become ISO strings and
    enums their value. None stays None.
    """
    value = _normalize_empty(value)
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def _normalize_empty(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _as_number(value: Any) -> Optional[Decimal]:
    if _is_number(value):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    if isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def diff(
    current: Mapping[str, Any],
    proposed: Mapping[str, Any],
    labels: Optional[Mapping[str, str]] = None,
) -> List[Change]:
    """Compute the change set with the configured numeric tolerance."""
    return ChangeDetector().diff(current, proposed, labels)
