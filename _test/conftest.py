"""Shared fixtures: settings environment, fixed clock and an in-memory entity store."""
import copy
import os
import sys
from datetime import datetime
from typing import Any, Dict, List

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time
os.environ.setdefault("MONGO_DETAILS", "mongodb://localhost:27017")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from core.clock import FixedClock
from core.store import ConditionalUpdate, Eligibility, get_path


class InMemoryEntityStore:
    """EntityStore over a list of plain dicts, with failure injection."""

    def __init__(self, documents: List[Dict[str, Any]] = None):
        self.documents = documents or []
        self.find_failures = 0
        self.find_calls = 0
        self.bulk_calls: List[List[ConditionalUpdate]] = []

    def get(self, _id) -> Dict[str, Any]:
        return next(doc for doc in self.documents if doc["_id"] == _id)

    async def find_eligible(self, eligibility: Eligibility) -> List[Dict[str, Any]]:
        self.find_calls += 1
        if self.find_failures:
            self.find_failures -= 1
            raise ConnectionError("store unavailable")
        return [copy.deepcopy(doc) for doc in self.documents if eligibility.matches(doc)]

    async def bulk_update(self, updates: List[ConditionalUpdate]) -> int:
        self.bulk_calls.append(list(updates))
        modified = 0
        for update in updates:
            for doc in self.documents:
                if all(get_path(doc, key) == value for key, value in update.filter.items()):
                    doc.update(copy.deepcopy(update.set))
                    modified += 1
                    break
        return modified


class FakeFlagService:
    def __init__(self, reset_due: bool = False):
        self.reset_due = reset_due
        self.reset_calls = 0
        self.initialize_calls = 0

    async def initialize(self) -> None:
        self.initialize_calls += 1

    async def should_reset(self, now: datetime) -> bool:
        return self.reset_due

    async def reset_flag_bot(self) -> None:
        self.reset_calls += 1
        self.reset_due = False


@pytest.fixture
def now() -> datetime:
    return datetime(2025, 10, 16, 9, 30)


@pytest.fixture
def clock(now) -> FixedClock:
    return FixedClock(now)


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def flags() -> FakeFlagService:
    return FakeFlagService()
