"""Shared test fixtures."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

# Keep tests away from the user's ~/.labcases/.env
os.environ.setdefault("LABCASES_BASE_PATH", tempfile.mkdtemp(prefix="labcases-tests-"))

import pytest

from labcases.models import Actor


@pytest.fixture
def actor():
    return Actor(id="user-1", label="ana@lab.com")


@pytest.fixture
def other_actor():
    return Actor(id="user-2", label="luis@lab.com")


@pytest.fixture
def record_fields():
    return {
        "code": "C-0001",
        "patient_name": "María Pérez",
        "patient_id_number": "V-12345678",
        "exam_type": "Biopsia",
        "branch": "STX",
        "date": "2024-05-10",
        "total_amount": "100",
        "exchange_rate": "36",
    }


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 10, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return StepClock()
