"""Record write services."""

from .case_service import CaseService, UpdateOutcome

__all__ = ["CaseService", "UpdateOutcome"]
